"""
Tenancy Domain Entities
========================

Read-only views of the tenant directory.

Tenants, mailboxes and queues are owned by the admin layer; the pipeline
only ever sees immutable snapshots of them.
"""

import fnmatch
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from supporthub.config import Priority


@dataclass(frozen=True)
class Tenant:
    """An isolated organisation served by the platform."""

    id: UUID
    name: str
    code: str
    is_active: bool = True


@dataclass(frozen=True)
class Mailbox:
    """
    A shared mailbox polled on behalf of one tenant.

    ``ignored_senders`` holds shell-style patterns (``noreply@*``) matched
    case-insensitively against the sender address.
    """

    id: UUID
    tenant_id: UUID
    address: str
    display_name: str
    is_active: bool = True
    polling_interval_minutes: int = 2
    last_polled_at: Optional[datetime] = None
    auto_create_tickets: bool = True
    default_priority: Priority = Priority.MEDIUM
    ignored_senders: Tuple[str, ...] = field(default_factory=tuple)

    def is_due(self, now: datetime) -> bool:
        """Check whether the polling interval has elapsed."""
        if self.last_polled_at is None:
            return True
        return now - self.last_polled_at >= timedelta(minutes=self.polling_interval_minutes)

    def ignores(self, sender: str, extra_patterns: Tuple[str, ...] = ()) -> bool:
        """Check the sender against this mailbox's and the global ignore list."""
        address = (sender or "").strip().lower()
        if not address:
            return False
        for pattern in (*self.ignored_senders, *extra_patterns):
            if fnmatch.fnmatchcase(address, pattern.strip().lower()):
                return True
        return False


@dataclass(frozen=True)
class QueueRef:
    """Routing destination."""

    id: UUID
    tenant_id: UUID
    name: str
    is_default: bool = False
    is_active: bool = True
