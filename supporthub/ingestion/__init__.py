"""
Ingestion Module
================

Bounded context for inbound mail.

Responsibilities:
- Poll each active tenant's mailboxes on an interval
- Deduplicate by provider message id
- Thread replies onto existing tickets, create tickets for new conversations
- Send agent replies carrying the threading contract
"""
