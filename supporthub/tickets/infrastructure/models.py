"""
Ticket Infrastructure Models
=============================

SQLAlchemy ORM models for the ticket aggregate.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from supporthub.config import MessageDirection, Priority, TicketSource, TicketStatus
from supporthub.infrastructure.database import Base, UTCDateTime, utcnow


class TicketModel(Base):
    """
    Database model for Ticket aggregate.

    Maps to the 'tickets' table. ``version`` is bumped by every write.
    """
    __tablename__ = "tickets"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=False, index=True
    )

    # Business identifier
    ticket_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    # Core fields
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, default=TicketStatus.NEW)
    priority: Mapped[Priority] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM)
    source: Mapped[TicketSource] = mapped_column(String(50), nullable=False)

    # Requester
    requester_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    requester_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    # Assignment
    assigned_agent_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    queue_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("queues.id"), nullable=True)

    # Categorization
    system: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    issue_type: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Lifecycle timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # SLA tracking
    sla_paused_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    sla_paused_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sla_breached_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Soft delete + optimistic concurrency
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_tickets_tenant_status", "tenant_id", "status"),
    )


class TicketTagModel(Base):
    """
    Database model for a ticket tag.

    Tags are stored lower-case; the unique constraint makes them a set.
    """
    __tablename__ = "ticket_tags"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint("ticket_id", "tag", name="uq_ticket_tags_ticket_tag"),
    )


class TicketMessageModel(Base):
    """
    Database model for a conversational entry.

    Maps to the 'ticket_messages' table.
    """
    __tablename__ = "ticket_messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    direction: Mapped[MessageDirection] = mapped_column(String(20), nullable=False)
    sender_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    sender_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    html_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    external_message_id: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class TicketAttachmentModel(Base):
    """
    Database model for attachment metadata.

    The blob itself lives in the attachment store.
    """
    __tablename__ = "ticket_attachments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    message_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("ticket_messages.id"), nullable=True
    )
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    stored_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    content_type: Mapped[str] = mapped_column(String(200), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
