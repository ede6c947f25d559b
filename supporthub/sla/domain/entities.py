"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from supporthub.config import BreachKind, Priority, UrgencyTier

# Most urgent first; used to pick a ticket's headline tier
URGENCY_ORDER = [
    UrgencyTier.BREACHED,
    UrgencyTier.CRITICAL,
    UrgencyTier.WARNING,
    UrgencyTier.ON_TRACK,
    UrgencyTier.PAUSED,
    UrgencyTier.MET,
]


@dataclass(frozen=True)
class SlaPolicy:
    """
    Targets for one (tenant, priority) pair.

    Read by the monitor as a snapshot; never mutated by the pipeline.
    """
    id: UUID
    tenant_id: UUID
    priority: Priority
    first_response_minutes: int
    resolution_minutes: int

    def __post_init__(self):
        if self.first_response_minutes <= 0 or self.resolution_minutes <= 0:
            raise ValueError("SLA targets must be positive")
        if self.resolution_minutes < self.first_response_minutes:
            raise ValueError("resolution target cannot be shorter than first response target")

    def target_minutes(self, kind: BreachKind) -> int:
        if kind == BreachKind.FIRST_RESPONSE:
            return self.first_response_minutes
        return self.resolution_minutes


@dataclass(frozen=True)
class ClockStatus:
    """State of one SLA clock at evaluation time."""
    kind: BreachKind
    target_minutes: int
    elapsed_seconds: float
    remaining_seconds: float
    percent_remaining: float
    urgency: UrgencyTier
    met_at: Optional[datetime] = None

    @property
    def minutes_remaining(self) -> int:
        return int(self.remaining_seconds // 60)

    @property
    def is_breached(self) -> bool:
        return self.urgency == UrgencyTier.BREACHED

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "target_minutes": self.target_minutes,
            "elapsed_seconds": round(self.elapsed_seconds, 1),
            "remaining_seconds": round(self.remaining_seconds, 1),
            "percent_remaining": round(self.percent_remaining, 2),
            "urgency": self.urgency.value,
            "met_at": self.met_at.isoformat() if self.met_at else None,
        }


@dataclass(frozen=True)
class SlaStatus:
    """
    Both clocks of a ticket, or ``no_policy`` when none applies.
    """
    ticket_id: UUID
    evaluated_at: datetime
    policy_id: Optional[UUID] = None
    first_response: Optional[ClockStatus] = None
    resolution: Optional[ClockStatus] = None

    @property
    def has_policy(self) -> bool:
        return self.policy_id is not None

    @property
    def clocks(self) -> List[ClockStatus]:
        return [c for c in (self.first_response, self.resolution) if c is not None]

    @property
    def most_urgent(self) -> Optional[UrgencyTier]:
        tiers = [c.urgency for c in self.clocks]
        for tier in URGENCY_ORDER:
            if tier in tiers:
                return tier
        return None

    def to_dict(self) -> dict:
        return {
            "ticket_id": str(self.ticket_id),
            "evaluated_at": self.evaluated_at.isoformat(),
            "status": "evaluated" if self.has_policy else "no_policy",
            "policy_id": str(self.policy_id) if self.policy_id else None,
            "urgency": self.most_urgent.value if self.most_urgent else None,
            "first_response": self.first_response.to_dict() if self.first_response else None,
            "resolution": self.resolution.to_dict() if self.resolution else None,
        }


@dataclass(frozen=True)
class SlaBreachRecord:
    """Append-only marker that a clock breached; one per (ticket, kind)."""
    ticket_id: UUID
    tenant_id: UUID
    kind: BreachKind
    detected_at: datetime


@dataclass(frozen=True)
class SlaWarningRecord:
    """Append-only marker for a warning tier; one per (ticket, kind, urgency)."""
    ticket_id: UUID
    tenant_id: UUID
    kind: BreachKind
    urgency: UrgencyTier
    minutes_remaining: int
    detected_at: datetime


@dataclass
class SlaMonitorRunSummary:
    """Counters for one SLA monitor run."""
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    tickets_evaluated: int = 0
    tickets_without_policy: int = 0
    breaches_recorded: int = 0
    warnings_recorded: int = 0
    notifications_failed: int = 0
    errors: int = 0
    stopped: bool = False
    breached_ticket_ids: List[UUID] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "tickets_evaluated": self.tickets_evaluated,
            "tickets_without_policy": self.tickets_without_policy,
            "breaches_recorded": self.breaches_recorded,
            "warnings_recorded": self.warnings_recorded,
            "notifications_failed": self.notifications_failed,
            "errors": self.errors,
            "stopped": self.stopped,
        }
