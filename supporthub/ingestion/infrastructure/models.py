"""
Ingestion Infrastructure Models
===============================

SQLAlchemy ORM model for the processed-message log.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from supporthub.config import ProcessingOutcome
from supporthub.infrastructure.database import Base, UTCDateTime, utcnow


class InboundMessageRecordModel(Base):
    """
    Database model for one processed inbound message.

    Maps to the 'inbound_message_records' table. The unique constraint is
    the deduplication guarantee under concurrent polls.
    """
    __tablename__ = "inbound_message_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id"), nullable=False, index=True
    )
    mailbox_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("mailboxes.id"), nullable=False, index=True
    )
    external_message_id: Mapped[str] = mapped_column(String(512), nullable=False)
    sender_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    subject: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    outcome: Mapped[ProcessingOutcome] = mapped_column(String(20), nullable=False)
    ticket_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("tickets.id"), nullable=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "external_message_id",
            name="uq_inbound_message_records_tenant_external_id"
        ),
    )
