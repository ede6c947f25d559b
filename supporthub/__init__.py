"""
SupportHub Ticket Pipeline
==========================

Ticket processing pipeline for the multi-tenant SupportHub platform.

Bounded contexts:
- tenancy: tenant, mailbox and queue directory
- tickets: ticket aggregate store with optimistic concurrency
- routing: first-match-wins routing rule engine
- ingestion: mailbox polling, reply threading, deduplication
- sla: SLA clock evaluation and breach monitoring
"""

__version__ = "1.0.0"
