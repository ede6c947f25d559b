"""
Tenancy Infrastructure Repositories
====================================

SQLAlchemy implementation of the tenant directory.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from supporthub.config import Priority
from supporthub.tenancy.application.services import ITenantDirectory
from supporthub.tenancy.domain.entities import Mailbox, QueueRef, Tenant
from supporthub.tenancy.infrastructure.models import MailboxModel, QueueModel, TenantModel


def _split_patterns(raw: Optional[str]) -> tuple:
    if not raw:
        return ()
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def to_tenant(model: TenantModel) -> Tenant:
    return Tenant(id=model.id, name=model.name, code=model.code, is_active=model.is_active)


def to_mailbox(model: MailboxModel) -> Mailbox:
    return Mailbox(
        id=model.id,
        tenant_id=model.tenant_id,
        address=model.address,
        display_name=model.display_name,
        is_active=model.is_active,
        polling_interval_minutes=model.polling_interval_minutes,
        last_polled_at=model.last_polled_at,
        auto_create_tickets=model.auto_create_tickets,
        default_priority=Priority(model.default_priority),
        ignored_senders=_split_patterns(model.ignored_senders),
    )


def to_queue(model: QueueModel) -> QueueRef:
    return QueueRef(
        id=model.id,
        tenant_id=model.tenant_id,
        name=model.name,
        is_default=model.is_default,
        is_active=model.is_active,
    )


class SQLAlchemyTenantDirectory(ITenantDirectory):
    """
    SQLAlchemy implementation of the tenant directory.

    Soft-deleted and inactive rows are filtered out of every lookup.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_active_tenants(self) -> List[Tenant]:
        stmt = (
            select(TenantModel)
            .where(TenantModel.is_active.is_(True), TenantModel.is_deleted.is_(False))
            .order_by(TenantModel.code)
        )
        result = await self._session.execute(stmt)
        return [to_tenant(m) for m in result.scalars().all()]

    async def get_tenant(self, tenant_id: UUID) -> Optional[Tenant]:
        stmt = select(TenantModel).where(
            TenantModel.id == tenant_id, TenantModel.is_deleted.is_(False)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_tenant(model) if model else None

    async def list_active_mailboxes(self, tenant_id: UUID) -> List[Mailbox]:
        stmt = (
            select(MailboxModel)
            .where(
                MailboxModel.tenant_id == tenant_id,
                MailboxModel.is_active.is_(True),
                MailboxModel.is_deleted.is_(False),
            )
            .order_by(MailboxModel.address)
        )
        result = await self._session.execute(stmt)
        return [to_mailbox(m) for m in result.scalars().all()]

    async def get_mailbox(self, mailbox_id: UUID) -> Optional[Mailbox]:
        stmt = select(MailboxModel).where(
            MailboxModel.id == mailbox_id, MailboxModel.is_deleted.is_(False)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_mailbox(model) if model else None

    async def get_default_queue(self, tenant_id: UUID) -> Optional[QueueRef]:
        stmt = (
            select(QueueModel)
            .where(
                QueueModel.tenant_id == tenant_id,
                QueueModel.is_default.is_(True),
                QueueModel.is_active.is_(True),
                QueueModel.is_deleted.is_(False),
            )
            .order_by(QueueModel.name)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_queue(model) if model else None

    async def get_queue(self, queue_id: UUID) -> Optional[QueueRef]:
        stmt = select(QueueModel).where(
            QueueModel.id == queue_id, QueueModel.is_deleted.is_(False)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_queue(model) if model else None

    async def mark_polled(self, mailbox_id: UUID, polled_at: datetime) -> None:
        stmt = (
            update(MailboxModel)
            .where(MailboxModel.id == mailbox_id)
            .values(last_polled_at=polled_at)
        )
        await self._session.execute(stmt)
