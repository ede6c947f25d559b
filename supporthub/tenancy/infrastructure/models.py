"""
Tenancy Infrastructure Models
==============================

SQLAlchemy ORM models for the tenant directory.

These tables are written by the admin layer; the pipeline reads them and
only ever touches ``mailboxes.last_polled_at``.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column

from supporthub.config import Priority
from supporthub.infrastructure.database import Base, UTCDateTime, utcnow


class TenantModel(Base):
    """
    Database model for Tenant entity.

    Maps to the 'tenants' table.
    """
    __tablename__ = "tenants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class MailboxModel(Base):
    """
    Database model for a polled shared mailbox.

    Maps to the 'mailboxes' table.
    """
    __tablename__ = "mailboxes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=False, index=True
    )
    address: Mapped[str] = mapped_column(String(320), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    polling_interval_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    last_polled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    auto_create_tickets: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_priority: Mapped[Priority] = mapped_column(
        String(50), nullable=False, default=Priority.MEDIUM
    )

    # Comma-separated shell patterns, e.g. "noreply@*,*@bounce.example.com"
    ignored_senders: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class QueueModel(Base):
    """
    Database model for a routing destination queue.

    Maps to the 'queues' table.
    """
    __tablename__ = "queues"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_queues_tenant_default", "tenant_id", "is_default"),
    )
