"""
Ingestion Application Interfaces
================================

Ports consumed by the ingestion pipeline: the mail provider, the attachment
blob store and the processed-message log.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from supporthub.ingestion.domain.entities import (
    InboundMessage, InboundMessageRecord, MailAttachment,
)
from supporthub.tenancy.domain.entities import Mailbox


class IMailProvider(ABC):
    """Interface for the external mail system."""

    @abstractmethod
    async def list_unseen_messages(
        self,
        mailbox: Mailbox,
        since: Optional[datetime],
        limit: int = 50,
    ) -> List[InboundMessage]:
        """
        Messages received after ``since``, oldest first.

        Raises:
            MailProviderException: transient provider failure
        """

    @abstractmethod
    async def mark_processed(self, mailbox: Mailbox, external_id: str) -> None:
        """Flag a message as handled so the provider stops listing it."""

    @abstractmethod
    async def send(
        self,
        mailbox: Mailbox,
        to: str,
        subject: str,
        body: str,
        headers: Dict[str, str],
    ) -> None:
        """
        Send a message from ``mailbox``.

        Raises:
            MailProviderException: the message was not accepted
        """


class IAttachmentStore(ABC):
    """Interface for attachment blob storage."""

    @abstractmethod
    async def save(self, tenant_id: UUID, ticket_id: UUID, attachment: MailAttachment) -> str:
        """Persist the blob and return its storage path."""


class IInboundMessageRecordRepository(ABC):
    """Interface for the processed-message log."""

    @abstractmethod
    async def exists(self, tenant_id: UUID, external_message_id: str) -> bool:
        """Whether the message has already been recorded for the tenant."""

    @abstractmethod
    async def add(self, record: InboundMessageRecord) -> InboundMessageRecord:
        """
        Record a processing outcome.

        Raises:
            DuplicateRecordException: already recorded by a concurrent poll
        """
