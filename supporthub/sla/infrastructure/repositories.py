"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

Breach and warning records are written with a conditional insert: the row
is added inside a savepoint and a uniqueness violation rolls back only that
savepoint, so the surrounding ticket transaction stays usable.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from supporthub.config import BreachKind, Priority
from supporthub.infrastructure.database import Base
from supporthub.shared.infrastructure.logging import get_logger
from supporthub.sla.application.services import (
    ISlaPolicyRepository, ISlaRecordRepository, PolicySnapshot,
)
from supporthub.sla.domain.entities import SlaBreachRecord, SlaPolicy, SlaWarningRecord
from supporthub.sla.infrastructure.models import (
    SlaBreachRecordModel, SlaPolicyModel, SlaWarningRecordModel,
)

logger = get_logger(__name__)


def to_policy(model: SlaPolicyModel) -> SlaPolicy:
    return SlaPolicy(
        id=model.id,
        tenant_id=model.tenant_id,
        priority=Priority(model.priority),
        first_response_minutes=model.first_response_minutes,
        resolution_minutes=model.resolution_minutes,
    )


class SQLAlchemySlaPolicyRepository(ISlaPolicyRepository):
    """Read-only access to configured SLA policies."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_policy(self, tenant_id: UUID, priority: Priority) -> Optional[SlaPolicy]:
        stmt = select(SlaPolicyModel).where(
            SlaPolicyModel.tenant_id == tenant_id,
            SlaPolicyModel.priority == priority.value,
            SlaPolicyModel.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return to_policy(model) if model else None

    async def get_snapshot(self) -> PolicySnapshot:
        stmt = select(SlaPolicyModel).where(SlaPolicyModel.is_deleted.is_(False))
        result = await self._session.execute(stmt)
        return {
            (model.tenant_id, Priority(model.priority)): to_policy(model)
            for model in result.scalars().all()
        }


class SQLAlchemySlaRecordRepository(ISlaRecordRepository):
    """Append-only breach and warning records."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _insert_once(self, model: Base) -> bool:
        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except IntegrityError:
            return False
        return True

    async def record_breach(self, record: SlaBreachRecord) -> bool:
        inserted = await self._insert_once(SlaBreachRecordModel(
            ticket_id=record.ticket_id,
            tenant_id=record.tenant_id,
            breach_kind=record.kind.value,
            detected_at=record.detected_at,
        ))
        if not inserted:
            logger.debug(
                "Breach already recorded",
                extra={"ticket_id": str(record.ticket_id), "breach_kind": record.kind.value}
            )
        return inserted

    async def record_warning(self, record: SlaWarningRecord) -> bool:
        return await self._insert_once(SlaWarningRecordModel(
            ticket_id=record.ticket_id,
            tenant_id=record.tenant_id,
            breach_kind=record.kind.value,
            urgency=record.urgency.value,
            minutes_remaining=record.minutes_remaining,
            detected_at=record.detected_at,
        ))

    async def list_breaches(self, ticket_id: UUID) -> List[SlaBreachRecord]:
        stmt = (
            select(SlaBreachRecordModel)
            .where(SlaBreachRecordModel.ticket_id == ticket_id)
            .order_by(SlaBreachRecordModel.detected_at)
        )
        result = await self._session.execute(stmt)
        return [
            SlaBreachRecord(
                ticket_id=m.ticket_id,
                tenant_id=m.tenant_id,
                kind=BreachKind(m.breach_kind),
                detected_at=m.detected_at,
            )
            for m in result.scalars().all()
        ]
