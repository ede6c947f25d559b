"""
Ingestion Domain Entities
=========================

Provider-neutral inbound mail and the per-message / per-batch / per-run
results the ingestion worker reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePath
from typing import List, Mapping, Optional, Tuple
from uuid import UUID

from supporthub.config import ProcessingOutcome


@dataclass(frozen=True)
class MailAttachment:
    """File attached to an inbound message."""
    file_name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        """Lower-cased suffix with its dot, empty when the name has none."""
        return PurePath(self.file_name.replace("\\", "/")).suffix.lower()


@dataclass(frozen=True)
class InboundMessage:
    """
    A message as listed by the mail provider.

    ``external_id`` is the provider's stable id and the deduplication key.
    """
    external_id: str
    sender_email: str
    subject: str
    body: str
    received_at: datetime
    sender_name: str = ""
    html_body: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    attachments: Tuple[MailAttachment, ...] = ()

    def header(self, name: str) -> Optional[str]:
        """Header value looked up case-insensitively."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True)
class InboundMessageRecord:
    """Persisted processing outcome for one external message."""
    tenant_id: UUID
    mailbox_id: UUID
    external_message_id: str
    outcome: ProcessingOutcome
    processed_at: datetime
    sender_email: str = ""
    subject: str = ""
    ticket_id: Optional[UUID] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class ProcessingItem:
    """Outcome of one message within a batch."""
    external_message_id: str
    outcome: ProcessingOutcome
    ticket_id: Optional[UUID] = None
    ticket_number: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "external_message_id": self.external_message_id,
            "outcome": self.outcome.value,
            "ticket_id": str(self.ticket_id) if self.ticket_id else None,
            "ticket_number": self.ticket_number,
            "reason": self.reason,
        }


@dataclass
class ProcessingBatchResult:
    """Everything that happened during one mailbox poll."""
    tenant_id: UUID
    mailbox_id: UUID
    started_at: datetime
    finished_at: Optional[datetime] = None
    items: List[ProcessingItem] = field(default_factory=list)
    error: Optional[str] = None
    stopped: bool = False
    # Listing hit the batch size; more unseen mail may be waiting
    truncated: bool = False

    def count(self, outcome: ProcessingOutcome) -> int:
        return sum(1 for item in self.items if item.outcome == outcome)

    @property
    def created(self) -> int:
        return self.count(ProcessingOutcome.CREATED)

    @property
    def appended(self) -> int:
        return self.count(ProcessingOutcome.APPENDED)

    @property
    def skipped(self) -> int:
        return self.count(ProcessingOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(ProcessingOutcome.FAILED)

    def to_dict(self) -> dict:
        return {
            "tenant_id": str(self.tenant_id),
            "mailbox_id": str(self.mailbox_id),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "created": self.created,
            "appended": self.appended,
            "skipped": self.skipped,
            "failed": self.failed,
            "error": self.error,
            "stopped": self.stopped,
            "truncated": self.truncated,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class IngestionRunSummary:
    """Aggregate of one ingestion worker run across all tenants."""
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    tenants: int = 0
    batches: List[ProcessingBatchResult] = field(default_factory=list)
    errors: int = 0
    stopped: bool = False

    def add_batch(self, batch: ProcessingBatchResult) -> None:
        self.batches.append(batch)
        if batch.error:
            self.errors += 1
        self.errors += batch.failed

    @property
    def created(self) -> int:
        return sum(b.created for b in self.batches)

    @property
    def appended(self) -> int:
        return sum(b.appended for b in self.batches)

    @property
    def skipped(self) -> int:
        return sum(b.skipped for b in self.batches)

    @property
    def failed(self) -> int:
        return sum(b.failed for b in self.batches)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "tenants": self.tenants,
            "mailboxes_polled": len(self.batches),
            "created": self.created,
            "appended": self.appended,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": self.errors,
            "stopped": self.stopped,
        }
