"""
Tenancy Domain Layer
====================

Immutable snapshots of tenants, mailboxes and queues.
"""

from supporthub.tenancy.domain.entities import Mailbox, QueueRef, Tenant

__all__ = ["Mailbox", "QueueRef", "Tenant"]
