"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from supporthub.config import BreachKind, Priority, UrgencyTier
from supporthub.infrastructure.database import Base, UTCDateTime, utcnow


class SlaPolicyModel(Base):
    """
    Database model for SLA policy.

    Maps to the 'sla_policies' table. At most one live policy per
    (tenant, priority).
    """
    __tablename__ = "sla_policies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=False, index=True
    )
    priority: Mapped[Priority] = mapped_column(String(50), nullable=False)

    # Targets in minutes
    first_response_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "priority", name="uq_sla_policies_tenant_priority"),
        CheckConstraint("first_response_minutes > 0", name="ck_sla_policies_first_response"),
        CheckConstraint(
            "resolution_minutes >= first_response_minutes",
            name="ck_sla_policies_resolution_after_response",
        ),
    )


class SlaBreachRecordModel(Base):
    """
    Database model for a recorded breach.

    Maps to the 'sla_breach_records' table. The unique constraint is what
    makes breach recording idempotent across monitor runs.
    """
    __tablename__ = "sla_breach_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id"), nullable=False, index=True
    )
    tenant_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    breach_kind: Mapped[BreachKind] = mapped_column(String(50), nullable=False)
    detected_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("ticket_id", "breach_kind", name="uq_sla_breach_records_ticket_kind"),
    )


class SlaWarningRecordModel(Base):
    """
    Database model for a warning tier crossing.

    Maps to the 'sla_warning_records' table.
    """
    __tablename__ = "sla_warning_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id"), nullable=False, index=True
    )
    tenant_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    breach_kind: Mapped[BreachKind] = mapped_column(String(50), nullable=False)
    urgency: Mapped[UrgencyTier] = mapped_column(String(50), nullable=False)
    minutes_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    detected_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "ticket_id", "breach_kind", "urgency",
            name="uq_sla_warning_records_ticket_kind_urgency",
        ),
    )
