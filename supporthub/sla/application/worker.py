"""
SLA monitor worker.

Evaluates every open ticket that has a policy, records newly crossed
breach and warning tiers exactly once, and dispatches notifications after
the records are committed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple
from uuid import UUID, uuid4

from supporthub.config import ALERTING_TIERS, BreachKind, UrgencyTier
from supporthub.infrastructure.database import utcnow
from supporthub.shared.application.audit import AuditEvent
from supporthub.shared.infrastructure.logging import get_logger, get_run_logger
from supporthub.sla.application.services import INotificationSink, PolicySnapshot
from supporthub.sla.domain.entities import (
    SlaBreachRecord, SlaMonitorRunSummary, SlaWarningRecord,
)
from supporthub.sla.domain.value_objects import SlaEvaluator, UrgencyThresholds
from supporthub.tickets.application.services import TicketService

if TYPE_CHECKING:
    from supporthub.infrastructure.unit_of_work import UnitOfWorkFactory

logger = get_logger(__name__)


@dataclass
class _TicketOutcome:
    ticket_number: str = ""
    has_policy: bool = True
    breaches: List[BreachKind] = field(default_factory=list)
    warnings: List[Tuple[BreachKind, UrgencyTier, int]] = field(default_factory=list)


class SlaMonitorWorker:
    """Periodic SLA monitor; ``last_run`` holds the latest summary."""

    def __init__(
        self,
        uow_factory: "UnitOfWorkFactory",
        notification_sink: INotificationSink,
        thresholds: Optional[UrgencyThresholds] = None,
    ):
        self._uow = uow_factory
        self._notifications = notification_sink
        self._thresholds = thresholds
        self._lock = asyncio.Lock()
        self.last_run: Optional[SlaMonitorRunSummary] = None

    async def wait_idle(self) -> None:
        """Wait until a run in progress, if any, has finished."""
        async with self._lock:
            pass

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        now: Optional[datetime] = None,
    ) -> SlaMonitorRunSummary:
        """Execute one monitor pass; never raises."""
        async with self._lock:
            now = now or utcnow()
            summary = SlaMonitorRunSummary(run_id=uuid4().hex[:12], started_at=utcnow())
            run_logger = get_run_logger(__name__, summary.run_id)
            thresholds = self._thresholds or UrgencyThresholds.from_settings()

            try:
                async with self._uow() as uow:
                    policies = await uow.sla_policies.get_snapshot()
                    ticket_ids = [t.id for t in await uow.tickets.list_open()]
            except Exception:
                run_logger.exception("Failed to load SLA monitor snapshot")
                summary.errors += 1
                summary.finished_at = utcnow()
                self.last_run = summary
                return summary

            for ticket_id in ticket_ids:
                if stop_event is not None and stop_event.is_set():
                    summary.stopped = True
                    break

                try:
                    outcome = await self._evaluate_ticket(ticket_id, policies, thresholds, now)
                except Exception:
                    summary.errors += 1
                    run_logger.exception("SLA evaluation failed", extra={"ticket_id": str(ticket_id)})
                    continue

                if outcome is None:
                    continue
                if not outcome.has_policy:
                    summary.tickets_without_policy += 1
                    continue

                summary.tickets_evaluated += 1
                summary.breaches_recorded += len(outcome.breaches)
                summary.warnings_recorded += len(outcome.warnings)
                if outcome.breaches:
                    summary.breached_ticket_ids.append(ticket_id)

                await self._dispatch(ticket_id, outcome, summary, run_logger)

            summary.finished_at = utcnow()
            self.last_run = summary
            run_logger.info("SLA monitor run finished", extra={"summary": summary.to_dict()})
            return summary

    async def _evaluate_ticket(
        self,
        ticket_id: UUID,
        policies: PolicySnapshot,
        thresholds: UrgencyThresholds,
        now: datetime,
    ) -> Optional[_TicketOutcome]:
        """Record new breach/warning rows for one ticket in one transaction."""
        async with self._uow() as uow:
            ticket = await uow.tickets.get(ticket_id)
            if ticket is None or not ticket.is_open:
                return None

            outcome = _TicketOutcome(ticket_number=ticket.ticket_number)
            policy = policies.get((ticket.tenant_id, ticket.priority))
            if policy is None:
                outcome.has_policy = False
                return outcome

            status = SlaEvaluator.evaluate(ticket, policy, now, thresholds)

            for clock in status.clocks:
                if clock.urgency == UrgencyTier.BREACHED:
                    inserted = await uow.sla_records.record_breach(SlaBreachRecord(
                        ticket_id=ticket.id,
                        tenant_id=ticket.tenant_id,
                        kind=clock.kind,
                        detected_at=now,
                    ))
                    if not inserted:
                        continue

                    await TicketService(uow.tickets).mutate(
                        ticket.id, lambda t: t.mark_sla_breached(now)
                    )
                    await uow.audit.record(AuditEvent(
                        action="sla.breached",
                        entity_type="Ticket",
                        entity_id=ticket.id,
                        tenant_id=ticket.tenant_id,
                        timestamp=now,
                        new_values={
                            "breach_kind": clock.kind.value,
                            "target_minutes": clock.target_minutes,
                            "elapsed_seconds": round(clock.elapsed_seconds, 1),
                            "priority": ticket.priority.value,
                        },
                    ))
                    outcome.breaches.append(clock.kind)

                elif clock.urgency in ALERTING_TIERS:
                    inserted = await uow.sla_records.record_warning(SlaWarningRecord(
                        ticket_id=ticket.id,
                        tenant_id=ticket.tenant_id,
                        kind=clock.kind,
                        urgency=clock.urgency,
                        minutes_remaining=clock.minutes_remaining,
                        detected_at=now,
                    ))
                    if inserted:
                        outcome.warnings.append((clock.kind, clock.urgency, clock.minutes_remaining))

            return outcome

    async def _dispatch(self, ticket_id, outcome: _TicketOutcome, summary, run_logger) -> None:
        """Send notifications for committed records; failures are only logged."""
        for kind in outcome.breaches:
            try:
                await self._notifications.notify_breach(ticket_id, kind, outcome.ticket_number)
            except Exception as e:
                summary.notifications_failed += 1
                run_logger.error(
                    "Breach notification failed",
                    extra={"ticket_id": str(ticket_id), "breach_kind": kind.value, "error": str(e)}
                )

        for kind, urgency, minutes_remaining in outcome.warnings:
            try:
                await self._notifications.notify_warning(
                    ticket_id, kind, minutes_remaining, outcome.ticket_number
                )
            except Exception as e:
                summary.notifications_failed += 1
                run_logger.error(
                    "Warning notification failed",
                    extra={
                        "ticket_id": str(ticket_id),
                        "breach_kind": kind.value,
                        "urgency": urgency.value,
                        "error": str(e),
                    }
                )
