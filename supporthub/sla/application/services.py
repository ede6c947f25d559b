"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple
from uuid import UUID

from supporthub.config import BreachKind, Priority
from supporthub.core import ResourceNotFoundException
from supporthub.infrastructure.database import utcnow
from supporthub.sla.domain.entities import (
    SlaBreachRecord, SlaPolicy, SlaStatus, SlaWarningRecord,
)
from supporthub.sla.domain.value_objects import SlaEvaluator, UrgencyThresholds

if TYPE_CHECKING:
    from supporthub.infrastructure.unit_of_work import UnitOfWorkFactory

PolicySnapshot = Dict[Tuple[UUID, Priority], SlaPolicy]


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISlaPolicyRepository(ABC):
    """Interface for SLA policy data access."""

    @abstractmethod
    async def get_policy(self, tenant_id: UUID, priority: Priority) -> Optional[SlaPolicy]:
        """Policy for one (tenant, priority), if configured."""

    @abstractmethod
    async def get_snapshot(self) -> PolicySnapshot:
        """Every active policy keyed by (tenant, priority)."""


class ISlaRecordRepository(ABC):
    """Interface for breach and warning records."""

    @abstractmethod
    async def record_breach(self, record: SlaBreachRecord) -> bool:
        """Insert unless already recorded; True only for the first insert."""

    @abstractmethod
    async def record_warning(self, record: SlaWarningRecord) -> bool:
        """Insert unless already recorded; True only for the first insert."""

    @abstractmethod
    async def list_breaches(self, ticket_id: UUID) -> List[SlaBreachRecord]:
        """Breach records of one ticket."""


class INotificationSink(ABC):
    """Interface for outbound SLA notifications."""

    @abstractmethod
    async def notify_breach(
        self,
        ticket_id: UUID,
        breach_kind: BreachKind,
        ticket_number: Optional[str] = None,
    ) -> None:
        """
        Announce a newly recorded breach.

        Raises:
            NotificationException: delivery failed
        """

    @abstractmethod
    async def notify_warning(
        self,
        ticket_id: UUID,
        breach_kind: BreachKind,
        minutes_remaining: int,
        ticket_number: Optional[str] = None,
    ) -> None:
        """
        Announce a clock entering a warning tier.

        Raises:
            NotificationException: delivery failed
        """


# ========== Application Services ==========

class SlaService:
    """
    Service for on-demand SLA status.

    Coordinates between domain logic and data access.
    """

    def __init__(
        self,
        uow_factory: "UnitOfWorkFactory",
        thresholds: Optional[UrgencyThresholds] = None,
    ):
        self._uow = uow_factory
        self._thresholds = thresholds

    async def get_ticket_status(self, ticket_id: UUID) -> Tuple[SlaStatus, List[SlaBreachRecord]]:
        """
        Evaluate a ticket now.

        Raises:
            ResourceNotFoundException: ticket does not exist
        """
        async with self._uow() as uow:
            ticket = await uow.tickets.get(ticket_id)
            if ticket is None or ticket.is_deleted:
                raise ResourceNotFoundException("Ticket", str(ticket_id))

            policy = await uow.sla_policies.get_policy(ticket.tenant_id, ticket.priority)
            breaches = await uow.sla_records.list_breaches(ticket_id)

        status = SlaEvaluator.evaluate(
            ticket, policy, utcnow(), self._thresholds or UrgencyThresholds.from_settings()
        )
        return status, breaches
