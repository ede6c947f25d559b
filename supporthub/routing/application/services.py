"""
Routing Application Services
============================

Applies the rule engine's decision to a ticket in a single versioned write
and records one audit event for it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from supporthub.config import settings
from supporthub.routing.domain.engine import evaluate
from supporthub.routing.domain.entities import RoutingContext, RoutingDecision, RuleSet
from supporthub.shared.application.audit import AuditEvent, IAuditSink
from supporthub.shared.infrastructure.logging import get_logger
from supporthub.tickets.application.services import TicketService
from supporthub.tickets.domain.entities import Ticket
from supporthub.infrastructure.database import utcnow

logger = get_logger(__name__)


class IRoutingRuleRepository(ABC):
    """Interface for routing rule data access."""

    @abstractmethod
    async def get_rule_set(self, tenant_id: UUID) -> RuleSet:
        """Snapshot of the tenant's non-deleted rules and default queue."""


class RoutingService:
    """
    Service that routes tickets.

    The rule set is read once per call; on a version conflict the decision
    is recomputed against the reloaded ticket before retrying the write.
    """

    def __init__(
        self,
        ticket_service: TicketService,
        rule_repository: IRoutingRuleRepository,
        audit_sink: IAuditSink,
    ):
        self._tickets = ticket_service
        self._rules = rule_repository
        self._audit = audit_sink

    async def route_ticket(
        self,
        ticket_id: UUID,
        now: Optional[datetime] = None,
    ) -> RoutingDecision:
        """
        Evaluate and apply routing for one ticket.

        Raises:
            ResourceNotFoundException: ticket does not exist
            ConcurrencyConflictException: write kept conflicting
        """
        now = now or utcnow()
        current = await self._tickets.get(ticket_id)
        rule_set = await self._rules.get_rule_set(current.tenant_id)

        def apply(ticket: Ticket) -> Tuple[RoutingDecision, dict]:
            before = ticket.routing_snapshot()
            decision = evaluate(
                RoutingContext.from_ticket(ticket),
                rule_set,
                regex_timeout_ms=settings.routing_regex_timeout_ms,
                max_pattern_length=settings.routing_regex_max_pattern_length,
            )
            ticket.apply_routing(
                decision.queue_id,
                now,
                agent_id=decision.assign_agent_id,
                priority=decision.set_priority,
                tags=decision.add_tags,
            )
            return decision, before

        ticket, (decision, before) = await self._tickets.mutate(ticket_id, apply)

        for error in decision.rule_errors:
            logger.warning(
                "Routing rule skipped",
                extra={
                    "ticket_id": str(ticket_id),
                    "rule_id": str(error.rule_id),
                    "rule_name": error.rule_name,
                    "reason": error.reason,
                }
            )

        await self._audit.record(AuditEvent(
            action="ticket.routed",
            entity_type="Ticket",
            entity_id=ticket.id,
            tenant_id=ticket.tenant_id,
            timestamp=now,
            old_values=before,
            new_values={
                **ticket.routing_snapshot(),
                "matched_rule_id": str(decision.matched_rule_id) if decision.matched_rule_id else None,
                "matched_rule_name": decision.matched_rule_name,
                "is_fallback": decision.is_fallback,
            },
        ))

        logger.info(
            "Ticket routed",
            extra={
                "ticket_id": str(ticket.id),
                "ticket_number": ticket.ticket_number,
                "queue_id": str(decision.queue_id) if decision.queue_id else None,
                "matched_rule": decision.matched_rule_name,
                "is_fallback": decision.is_fallback,
            }
        )
        return decision
