"""
Ticket Domain Entities
=======================

Pure Python domain entities for the ticket aggregate.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns. The aggregate is
the single record that ingestion, routing and the SLA monitor all write,
so every state change goes through a method here.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID, uuid4

from supporthub.config import (
    MessageDirection, Priority, TicketSource, TicketStatus,
    OPEN_STATUSES, TERMINAL_STATUSES,
)
from supporthub.core import InvalidTransitionException

TICKET_NUMBER_PATTERN = re.compile(r"TKT-\d{8}-\d{4}")

VALID_TRANSITIONS: Dict[TicketStatus, Set[TicketStatus]] = {
    TicketStatus.NEW: {TicketStatus.OPEN, TicketStatus.PENDING, TicketStatus.CLOSED},
    TicketStatus.OPEN: {TicketStatus.PENDING, TicketStatus.ON_HOLD,
                        TicketStatus.RESOLVED, TicketStatus.CLOSED},
    TicketStatus.PENDING: {TicketStatus.OPEN, TicketStatus.ON_HOLD,
                           TicketStatus.RESOLVED, TicketStatus.CLOSED},
    TicketStatus.ON_HOLD: {TicketStatus.OPEN, TicketStatus.PENDING,
                           TicketStatus.RESOLVED, TicketStatus.CLOSED},
    TicketStatus.RESOLVED: {TicketStatus.OPEN, TicketStatus.CLOSED},
    TicketStatus.CLOSED: {TicketStatus.OPEN},
}


def format_ticket_number(day: datetime, sequence: int) -> str:
    """Human-readable number, e.g. TKT-20260101-0007."""
    return f"TKT-{day:%Y%m%d}-{sequence:04d}"


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def normalize_tags(tags: Iterable[str]) -> Set[str]:
    return {t for t in (normalize_tag(tag) for tag in tags) if t}


@dataclass
class Ticket:
    """
    Ticket aggregate.

    ``version`` is the optimistic concurrency token: it is the version the
    entity was loaded at, and the store bumps it on every successful write.
    """

    id: UUID
    tenant_id: UUID
    ticket_number: str
    subject: str
    description: str
    status: TicketStatus
    priority: Priority
    source: TicketSource
    requester_email: str
    requester_name: str
    created_at: datetime
    updated_at: datetime

    # Assignment
    assigned_agent_id: Optional[UUID] = None
    queue_id: Optional[UUID] = None

    # Categorization
    system: Optional[str] = None
    issue_type: Optional[str] = None
    tags: Set[str] = field(default_factory=set)

    # Lifecycle timestamps
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    # SLA clock pausing (reserved for business-hours clocks)
    sla_paused_at: Optional[datetime] = None
    sla_paused_seconds: int = 0
    sla_breached_at: Optional[datetime] = None

    is_deleted: bool = False
    version: int = 1

    def __post_init__(self):
        """Validate ticket on initialization."""
        self.tags = normalize_tags(self.tags)

        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

        if self.status not in TERMINAL_STATUSES and (self.resolved_at or self.closed_at):
            raise ValueError("resolved_at/closed_at must be empty while the ticket is open")

        if self.sla_paused_seconds < 0:
            raise ValueError("sla_paused_seconds cannot be negative")

    @property
    def is_open(self) -> bool:
        """Check if ticket is still open."""
        return self.status in OPEN_STATUSES and not self.is_deleted

    @property
    def is_terminal(self) -> bool:
        """Check if ticket has been resolved or closed."""
        return self.status in TERMINAL_STATUSES

    def paused_seconds_at(self, now: datetime) -> float:
        """Total paused time including a pause still in progress."""
        paused = float(self.sla_paused_seconds)
        if self.sla_paused_at is not None and now > self.sla_paused_at:
            paused += (now - self.sla_paused_at).total_seconds()
        return paused

    # ========== State changes ==========

    def transition_to(self, new_status: TicketStatus, now: datetime) -> None:
        """Move to ``new_status`` following the lifecycle table."""
        if new_status == self.status:
            return
        if new_status not in VALID_TRANSITIONS.get(self.status, set()):
            raise InvalidTransitionException(self.status, new_status)

        old_status = self.status
        self.status = new_status

        if new_status == TicketStatus.RESOLVED:
            self.resolved_at = now
        elif new_status == TicketStatus.CLOSED:
            self.closed_at = now
        elif old_status in TERMINAL_STATUSES:
            self.resolved_at = None
            self.closed_at = None

        self.updated_at = now

    def record_inbound_reply(self, now: datetime) -> Optional[TicketStatus]:
        """
        Apply the status effect of a customer reply.

        Returns the previous status when the reply changed it.
        """
        previous = self.status
        if self.status == TicketStatus.PENDING or self.is_terminal:
            self.transition_to(TicketStatus.OPEN, now)
        self.updated_at = now
        return previous if previous != self.status else None

    def record_outbound_message(self, now: datetime) -> None:
        """Stop the first-response clock on the first agent message."""
        if self.first_response_at is None:
            self.first_response_at = now
        if self.status == TicketStatus.NEW:
            self.transition_to(TicketStatus.OPEN, now)
        self.updated_at = now

    def add_tags(self, tags: Iterable[str]) -> List[str]:
        """Add tags case-insensitively; returns only the ones that were new."""
        added = sorted(normalize_tags(tags) - self.tags)
        self.tags.update(added)
        return added

    def apply_routing(
        self,
        queue_id: Optional[UUID],
        now: datetime,
        agent_id: Optional[UUID] = None,
        priority: Optional[Priority] = None,
        tags: Iterable[str] = (),
    ) -> None:
        """Apply every field of a routing decision in one step."""
        if queue_id is not None:
            self.queue_id = queue_id
        if agent_id is not None:
            self.assigned_agent_id = agent_id
        if priority is not None:
            self.priority = priority
        self.add_tags(tags)
        self.updated_at = now

    def mark_sla_breached(self, now: datetime) -> bool:
        """Stamp the first SLA breach; later breaches leave it unchanged."""
        if self.sla_breached_at is not None:
            return False
        self.sla_breached_at = now
        self.updated_at = now
        return True

    def routing_snapshot(self) -> dict:
        """Fields touched by routing, for audit old/new values."""
        return {
            "queue_id": str(self.queue_id) if self.queue_id else None,
            "assigned_agent_id": str(self.assigned_agent_id) if self.assigned_agent_id else None,
            "priority": self.priority.value,
            "tags": sorted(self.tags),
        }

    def state_snapshot(self) -> dict:
        """Every mutable field, used to detect no-op mutations."""
        return {
            **self.routing_snapshot(),
            "subject": self.subject,
            "description": self.description,
            "status": self.status.value,
            "system": self.system,
            "issue_type": self.issue_type,
            "first_response_at": self.first_response_at,
            "resolved_at": self.resolved_at,
            "closed_at": self.closed_at,
            "sla_paused_at": self.sla_paused_at,
            "sla_paused_seconds": self.sla_paused_seconds,
            "sla_breached_at": self.sla_breached_at,
            "is_deleted": self.is_deleted,
        }


@dataclass
class TicketMessage:
    """Conversational entry on a ticket."""

    ticket_id: UUID
    direction: MessageDirection
    body: str
    created_at: datetime
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    html_body: Optional[str] = None
    external_message_id: Optional[str] = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class TicketAttachment:
    """Metadata for a blob saved through the attachment store."""

    ticket_id: UUID
    file_name: str
    stored_path: str
    content_type: str
    size: int
    created_at: datetime
    message_id: Optional[UUID] = None
    id: UUID = field(default_factory=uuid4)
