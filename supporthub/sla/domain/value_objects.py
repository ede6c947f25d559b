"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from supporthub.config import BreachKind, UrgencyTier, settings
from supporthub.sla.domain.entities import ClockStatus, SlaPolicy, SlaStatus
from supporthub.tickets.domain.entities import Ticket


@dataclass(frozen=True)
class UrgencyThresholds:
    """Percent-remaining boundaries of the warning and critical tiers."""
    warning_percent: float = 50.0
    critical_percent: float = 25.0

    def __post_init__(self):
        if not 0 < self.critical_percent <= self.warning_percent <= 100:
            raise ValueError("thresholds must satisfy 0 < critical <= warning <= 100")

    @classmethod
    def from_settings(cls) -> "UrgencyThresholds":
        return cls(settings.sla_warning_percent, settings.sla_critical_percent)

    def tier_for(self, percent_remaining: float) -> UrgencyTier:
        """
        > warning: on_track; (critical, warning]: warning;
        (0, critical]: critical; <= 0: breached.
        """
        if percent_remaining <= 0:
            return UrgencyTier.BREACHED
        if percent_remaining <= self.critical_percent:
            return UrgencyTier.CRITICAL
        if percent_remaining <= self.warning_percent:
            return UrgencyTier.WARNING
        return UrgencyTier.ON_TRACK


class SlaEvaluator:
    """
    Pure functions for SLA calculations.

    Clocks measure elapsed wall-clock time minus paused time; there is no
    business-hours calendar.
    """

    @staticmethod
    def evaluate_clock(
        kind: BreachKind,
        target_minutes: int,
        created_at: datetime,
        met_at: Optional[datetime],
        paused_seconds: float,
        is_paused: bool,
        now: datetime,
        thresholds: UrgencyThresholds,
    ) -> ClockStatus:
        target_seconds = target_minutes * 60.0

        if met_at is not None:
            elapsed = max(0.0, (met_at - created_at).total_seconds() - paused_seconds)
            urgency = UrgencyTier.MET
        else:
            elapsed = max(0.0, (now - created_at).total_seconds() - paused_seconds)
            urgency = None

        remaining = target_seconds - elapsed
        percent = remaining / target_seconds * 100.0

        if urgency is None:
            urgency = UrgencyTier.PAUSED if is_paused else thresholds.tier_for(percent)

        return ClockStatus(
            kind=kind,
            target_minutes=target_minutes,
            elapsed_seconds=elapsed,
            remaining_seconds=remaining,
            percent_remaining=percent,
            urgency=urgency,
            met_at=met_at,
        )

    @staticmethod
    def evaluate(
        ticket: Ticket,
        policy: Optional[SlaPolicy],
        now: datetime,
        thresholds: Optional[UrgencyThresholds] = None,
    ) -> SlaStatus:
        """Both clocks of ``ticket`` under ``policy`` at ``now``."""
        if policy is None:
            return SlaStatus(ticket_id=ticket.id, evaluated_at=now)

        thresholds = thresholds or UrgencyThresholds.from_settings()
        paused_seconds = ticket.paused_seconds_at(now)
        is_paused = ticket.sla_paused_at is not None

        def clock(kind: BreachKind, met_at: Optional[datetime]) -> ClockStatus:
            return SlaEvaluator.evaluate_clock(
                kind, policy.target_minutes(kind), ticket.created_at, met_at,
                paused_seconds, is_paused, now, thresholds,
            )

        return SlaStatus(
            ticket_id=ticket.id,
            evaluated_at=now,
            policy_id=policy.id,
            first_response=clock(BreachKind.FIRST_RESPONSE, ticket.first_response_at),
            resolution=clock(BreachKind.RESOLUTION, ticket.resolved_at),
        )
