"""
Tenancy Module
==============

Bounded context for the tenant directory.

Responsibilities:
- Resolve which tenants exist and which are active
- List the mailboxes each tenant polls
- Resolve routing destination queues and the per-tenant fallback queue
"""
