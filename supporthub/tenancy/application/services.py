"""
Tenancy Application Services
=============================

Query interface over the tenant directory.

Every pipeline depends on this abstraction rather than on the SQLAlchemy
implementation, so the directory can be swapped for a fake in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from supporthub.tenancy.domain.entities import Mailbox, QueueRef, Tenant


class ITenantDirectory(ABC):
    """Interface for tenant, mailbox and queue lookups."""

    @abstractmethod
    async def list_active_tenants(self) -> List[Tenant]:
        """Active, non-deleted tenants."""

    @abstractmethod
    async def get_tenant(self, tenant_id: UUID) -> Optional[Tenant]:
        """Get tenant by ID."""

    @abstractmethod
    async def list_active_mailboxes(self, tenant_id: UUID) -> List[Mailbox]:
        """Active mailboxes of one tenant."""

    @abstractmethod
    async def get_mailbox(self, mailbox_id: UUID) -> Optional[Mailbox]:
        """Get mailbox by ID."""

    @abstractmethod
    async def get_default_queue(self, tenant_id: UUID) -> Optional[QueueRef]:
        """The tenant's designated fallback queue, if any."""

    @abstractmethod
    async def get_queue(self, queue_id: UUID) -> Optional[QueueRef]:
        """Get queue by ID."""

    @abstractmethod
    async def mark_polled(self, mailbox_id: UUID, polled_at: datetime) -> None:
        """Advance a mailbox's polling watermark."""
