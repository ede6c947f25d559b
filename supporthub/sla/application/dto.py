"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization for API responses.
Following YAGNI - only what's needed.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from supporthub.sla.domain.entities import ClockStatus, SlaBreachRecord, SlaStatus


# ========== Type Aliases for Literals ==========
BreachKindStr = Literal["first_response", "resolution"]
UrgencyStr = Literal["on_track", "warning", "critical", "breached", "met", "paused"]
EvaluationStr = Literal["evaluated", "no_policy"]


class ClockStatusResponse(BaseModel):
    """Response model for one SLA clock."""
    kind: BreachKindStr
    target_minutes: int
    elapsed_seconds: float
    remaining_seconds: float = Field(..., description="Negative once breached")
    percent_remaining: float
    urgency: UrgencyStr
    met_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, clock: ClockStatus) -> "ClockStatusResponse":
        return cls(
            kind=clock.kind.value,
            target_minutes=clock.target_minutes,
            elapsed_seconds=round(clock.elapsed_seconds, 1),
            remaining_seconds=round(clock.remaining_seconds, 1),
            percent_remaining=round(clock.percent_remaining, 2),
            urgency=clock.urgency.value,
            met_at=clock.met_at,
        )


class SlaBreachResponse(BaseModel):
    """Response model for a recorded breach."""
    kind: BreachKindStr
    detected_at: datetime


class TicketSlaResponse(BaseModel):
    """Response model for ticket SLA information."""
    ticket_id: str = Field(..., description="Ticket UUID")
    evaluated_at: datetime
    status: EvaluationStr = Field(..., description="no_policy when no target applies")
    policy_id: Optional[str] = None
    urgency: Optional[UrgencyStr] = Field(None, description="Most urgent clock")
    first_response: Optional[ClockStatusResponse] = None
    resolution: Optional[ClockStatusResponse] = None
    breaches: List[SlaBreachResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(
        cls, status: SlaStatus, breaches: List[SlaBreachRecord]
    ) -> "TicketSlaResponse":
        return cls(
            ticket_id=str(status.ticket_id),
            evaluated_at=status.evaluated_at,
            status="evaluated" if status.has_policy else "no_policy",
            policy_id=str(status.policy_id) if status.policy_id else None,
            urgency=status.most_urgent.value if status.most_urgent else None,
            first_response=(
                ClockStatusResponse.from_domain(status.first_response)
                if status.first_response else None
            ),
            resolution=(
                ClockStatusResponse.from_domain(status.resolution)
                if status.resolution else None
            ),
            breaches=[
                SlaBreachResponse(kind=b.kind.value, detected_at=b.detected_at)
                for b in breaches
            ],
        )
