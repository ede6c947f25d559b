"""
Routing Infrastructure Models
=============================

SQLAlchemy ORM model for admin-configured routing rules.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from supporthub.config import Priority, RuleMatchOperator, RuleMatchType
from supporthub.infrastructure.database import Base, UTCDateTime, utcnow


class RoutingRuleModel(Base):
    """
    Database model for a routing rule.

    Maps to the 'routing_rules' table. Sort positions are unique per tenant
    so evaluation order is never ambiguous.
    """
    __tablename__ = "routing_rules"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Predicate
    match_type: Mapped[RuleMatchType] = mapped_column(String(50), nullable=False)
    match_operator: Mapped[RuleMatchOperator] = mapped_column(String(50), nullable=False)
    match_value: Mapped[str] = mapped_column(String(1000), nullable=False)

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Actions
    queue_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("queues.id"), nullable=False)
    auto_assign_agent_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    auto_set_priority: Mapped[Optional[Priority]] = mapped_column(String(50), nullable=True)
    auto_add_tags: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "sort_order", name="uq_routing_rules_tenant_sort_order"),
    )
