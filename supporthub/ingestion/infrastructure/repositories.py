"""
Ingestion Infrastructure Repositories
=====================================

SQLAlchemy implementation of the processed-message log.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from supporthub.core import DuplicateRecordException
from supporthub.ingestion.application.interfaces import IInboundMessageRecordRepository
from supporthub.ingestion.domain.entities import InboundMessageRecord
from supporthub.ingestion.infrastructure.models import InboundMessageRecordModel


class SQLAlchemyInboundMessageRecordRepository(IInboundMessageRecordRepository):
    """SQLAlchemy implementation of the processed-message log."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def exists(self, tenant_id: UUID, external_message_id: str) -> bool:
        stmt = select(InboundMessageRecordModel.id).where(
            InboundMessageRecordModel.tenant_id == tenant_id,
            InboundMessageRecordModel.external_message_id == external_message_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def add(self, record: InboundMessageRecord) -> InboundMessageRecord:
        self._session.add(InboundMessageRecordModel(
            tenant_id=record.tenant_id,
            mailbox_id=record.mailbox_id,
            external_message_id=record.external_message_id,
            sender_email=record.sender_email[:320],
            subject=record.subject[:1000],
            outcome=record.outcome.value,
            ticket_id=record.ticket_id,
            error_message=record.error_message,
            processed_at=record.processed_at,
        ))
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateRecordException(
                f"Message {record.external_message_id} already recorded",
                {"tenant_id": str(record.tenant_id)}
            ) from e
        return record
