"""
Routing Domain Entities
=======================

Immutable snapshots consumed by the rule engine. Nothing here touches the
database; the application layer builds a RuleSet per routing call.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple
from uuid import UUID

from supporthub.config import Priority, RuleMatchOperator, RuleMatchType
from supporthub.tickets.domain.entities import Ticket, normalize_tags


def split_list(raw: Optional[str]) -> Tuple[str, ...]:
    """Parse a comma-separated admin value, dropping blanks."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class RoutingRule:
    """One ordered, tenant-scoped routing rule."""
    id: UUID
    tenant_id: UUID
    name: str
    match_type: RuleMatchType
    operator: RuleMatchOperator
    match_value: str
    sort_order: int
    queue_id: UUID
    queue_tenant_id: UUID
    is_active: bool = True
    assign_agent_id: Optional[UUID] = None
    set_priority: Optional[Priority] = None
    add_tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RuleSet:
    """Read-only snapshot of a tenant's rules plus its fallback queue."""
    tenant_id: UUID
    rules: Tuple[RoutingRule, ...] = ()
    default_queue_id: Optional[UUID] = None


@dataclass(frozen=True)
class RoutingContext:
    """Ticket fields that routing rules can match on."""
    tenant_id: UUID
    requester_email: str = ""
    subject: str = ""
    body: str = ""
    issue_type: Optional[str] = None
    system: Optional[str] = None
    tags: FrozenSet[str] = frozenset()

    @property
    def sender_domain(self) -> Optional[str]:
        _, sep, domain = (self.requester_email or "").rpartition("@")
        return domain.lower() if sep and domain else None

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "RoutingContext":
        return cls(
            tenant_id=ticket.tenant_id,
            requester_email=ticket.requester_email,
            subject=ticket.subject,
            body=ticket.description,
            issue_type=ticket.issue_type,
            system=ticket.system,
            tags=frozenset(normalize_tags(ticket.tags)),
        )


@dataclass(frozen=True)
class RuleError:
    """A rule skipped during evaluation, with the reason."""
    rule_id: UUID
    rule_name: str
    reason: str


@dataclass(frozen=True)
class RoutingDecision:
    """
    Outcome of evaluating a rule set.

    ``queue_id`` is None only when no rule matched and the tenant has no
    default queue.
    """
    queue_id: Optional[UUID]
    is_fallback: bool = False
    matched_rule_id: Optional[UUID] = None
    matched_rule_name: Optional[str] = None
    assign_agent_id: Optional[UUID] = None
    set_priority: Optional[Priority] = None
    add_tags: Tuple[str, ...] = ()
    rule_errors: Tuple[RuleError, ...] = field(default_factory=tuple)

    @property
    def is_routed(self) -> bool:
        return self.queue_id is not None

    def to_dict(self) -> dict:
        return {
            "queue_id": str(self.queue_id) if self.queue_id else None,
            "is_fallback": self.is_fallback,
            "matched_rule_id": str(self.matched_rule_id) if self.matched_rule_id else None,
            "matched_rule_name": self.matched_rule_name,
            "assign_agent_id": str(self.assign_agent_id) if self.assign_agent_id else None,
            "set_priority": self.set_priority.value if self.set_priority else None,
            "add_tags": list(self.add_tags),
            "rule_errors": [
                {"rule_id": str(e.rule_id), "rule_name": e.rule_name, "reason": e.reason}
                for e in self.rule_errors
            ],
        }
