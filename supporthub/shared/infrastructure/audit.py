"""
Audit Log Persistence
=====================

Rows in ``audit_log_entries`` written through the caller's session, so an
audit event commits or rolls back together with the change it describes.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from supporthub.infrastructure.database import Base, UTCDateTime, utcnow
from supporthub.shared.application.audit import AuditEvent, IAuditSink
from supporthub.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AuditLogModel(Base):
    """
    Database model for an audit trail entry.

    Maps to the 'audit_log_entries' table. Append-only.
    """
    __tablename__ = "audit_log_entries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    old_values: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class SQLAlchemyAuditSink(IAuditSink):
    """Audit sink that writes into the current unit of work."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(self, event: AuditEvent) -> None:
        self._session.add(AuditLogModel(
            tenant_id=event.tenant_id,
            action=event.action,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            actor=event.actor,
            old_values=event.old_values,
            new_values=event.new_values,
            created_at=event.timestamp,
        ))
        await self._session.flush()

        logger.info(
            "Audit event recorded",
            extra={
                "action": event.action,
                "entity_type": event.entity_type,
                "entity_id": str(event.entity_id),
                "tenant_id": str(event.tenant_id),
            }
        )
