"""
Ingestion Application Services
==============================

Turns inbound mail into ticket state.

Each message is handled in its own unit of work: the ticket mutation, the
conversation entry, the routing write and the processed-message record
commit together or not at all.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence
import asyncio

from supporthub.config import MessageDirection, ProcessingOutcome, settings
from supporthub.core import DuplicateRecordException, MailProviderException
from supporthub.infrastructure.database import utcnow
from supporthub.ingestion.application.interfaces import IAttachmentStore, IMailProvider
from supporthub.ingestion.application.matcher import MessageMatcher
from supporthub.ingestion.domain.entities import (
    InboundMessage, InboundMessageRecord, ProcessingBatchResult, ProcessingItem,
)
from supporthub.routing.application.services import RoutingService
from supporthub.shared.infrastructure.logging import get_logger, log_latency
from supporthub.tenancy.domain.entities import Mailbox
from supporthub.tickets.application.services import TicketService
from supporthub.tickets.domain.entities import Ticket, TicketAttachment, TicketMessage

if TYPE_CHECKING:
    from supporthub.infrastructure.unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = get_logger(__name__)

REASON_DUPLICATE = "duplicate"
REASON_IGNORED_SENDER = "ignored sender"
REASON_AUTO_CREATE_DISABLED = "auto-create disabled"


class IngestionService:
    """
    Service for polling one mailbox and processing its messages.

    Dependencies are injected so the service can run against fakes.
    """

    def __init__(
        self,
        uow_factory: "UnitOfWorkFactory",
        mail_provider: IMailProvider,
        attachment_store: IAttachmentStore,
        ignored_senders: Sequence[str] = (),
        batch_size: Optional[int] = None,
        allowed_extensions: Optional[Sequence[str]] = None,
    ):
        self._uow = uow_factory
        self._provider = mail_provider
        self._attachments = attachment_store
        self._ignored_senders = tuple(ignored_senders)
        self._batch_size = batch_size or settings.ingestion_batch_size
        self._allowed_extensions = frozenset(
            e.lower() for e in (allowed_extensions or settings.attachment_allowed_extensions)
        )

    async def poll_mailbox(
        self,
        mailbox: Mailbox,
        stop_event: Optional[asyncio.Event] = None,
    ) -> ProcessingBatchResult:
        """
        Fetch and process the unseen messages of one mailbox.

        A provider failure while listing aborts the batch before any state
        is written; the same messages are listed again on the next run.

        ``last_polled_at`` is the lower bound of the next listing, so it only
        advances once every listed message was handled and the listing was
        not cut off at the batch size. A truncated or stopped batch leaves it
        in place and the remaining unseen mail is listed on the next run.
        """
        batch = ProcessingBatchResult(
            tenant_id=mailbox.tenant_id,
            mailbox_id=mailbox.id,
            started_at=utcnow(),
        )
        log_context = {"tenant_id": str(mailbox.tenant_id), "mailbox": mailbox.address}

        try:
            with log_latency(logger, "list_unseen_messages", **log_context):
                messages = await self._provider.list_unseen_messages(
                    mailbox, mailbox.last_polled_at, limit=self._batch_size
                )
        except MailProviderException as e:
            batch.error = e.message
            batch.finished_at = utcnow()
            logger.warning("Mailbox poll aborted", extra={**log_context, "error": e.message})
            return batch

        batch.truncated = len(messages) >= self._batch_size

        for message in messages:
            if stop_event is not None and stop_event.is_set():
                batch.stopped = True
                break

            item = await self.process_message(mailbox, message)
            batch.items.append(item)

            try:
                await self._provider.mark_processed(mailbox, message.external_id)
            except MailProviderException as e:
                logger.warning(
                    "Failed to mark message processed",
                    extra={**log_context, "external_id": message.external_id, "error": e.message}
                )

        if not (batch.stopped or batch.truncated):
            async with self._uow() as uow:
                await uow.tenants.mark_polled(mailbox.id, batch.started_at)

        batch.finished_at = utcnow()
        logger.info(
            "Mailbox polled",
            extra={
                **log_context,
                "listed": len(messages),
                "tickets_created": batch.created,
                "appended": batch.appended,
                "skipped": batch.skipped,
                "failed": batch.failed,
                "truncated": batch.truncated,
            }
        )
        return batch

    async def process_message(self, mailbox: Mailbox, message: InboundMessage) -> ProcessingItem:
        """Process one message in its own transaction; never raises."""
        try:
            async with self._uow() as uow:
                return await self._process(uow, mailbox, message, utcnow())
        except DuplicateRecordException:
            # A concurrent poll recorded it first; our writes were rolled back
            return ProcessingItem(message.external_id, ProcessingOutcome.SKIPPED, reason=REASON_DUPLICATE)
        except Exception as e:
            logger.exception(
                "Inbound message failed",
                extra={
                    "tenant_id": str(mailbox.tenant_id),
                    "mailbox": mailbox.address,
                    "external_id": message.external_id,
                }
            )
            await self._record_failure(mailbox, message, e)
            return ProcessingItem(message.external_id, ProcessingOutcome.FAILED, reason=str(e))

    async def _process(
        self,
        uow: "UnitOfWork",
        mailbox: Mailbox,
        message: InboundMessage,
        now: datetime,
    ) -> ProcessingItem:
        if await uow.inbound_records.exists(mailbox.tenant_id, message.external_id):
            return ProcessingItem(message.external_id, ProcessingOutcome.SKIPPED, reason=REASON_DUPLICATE)

        if mailbox.ignores(message.sender_email, self._ignored_senders):
            return await self._record(uow, mailbox, message, now, ProcessingOutcome.SKIPPED,
                                      reason=REASON_IGNORED_SENDER)

        tickets = TicketService(uow.tickets)
        match = await MessageMatcher(uow.tickets).match(mailbox.tenant_id, message)

        if not match.is_new:
            ticket, previous_status = await tickets.mutate(
                match.ticket.id, lambda t: t.record_inbound_reply(now)
            )
            await self._append_message(tickets, ticket, message, now)
            logger.info(
                "Reply appended to ticket",
                extra={
                    "ticket_number": ticket.ticket_number,
                    "matched_by": match.matched_by,
                    "previous_status": previous_status.value if previous_status else None,
                    "status": ticket.status.value,
                }
            )
            return await self._record(uow, mailbox, message, now, ProcessingOutcome.APPENDED, ticket)

        if not mailbox.auto_create_tickets:
            return await self._record(uow, mailbox, message, now, ProcessingOutcome.SKIPPED,
                                      reason=REASON_AUTO_CREATE_DISABLED)

        ticket = await tickets.open_ticket(
            tenant_id=mailbox.tenant_id,
            subject=message.subject or "(no subject)",
            description=message.body,
            requester_email=message.sender_email,
            requester_name=message.sender_name,
            now=now,
            priority=mailbox.default_priority,
        )
        await self._append_message(tickets, ticket, message, now)
        await RoutingService(tickets, uow.rules, uow.audit).route_ticket(ticket.id, now)

        logger.info(
            "Ticket created from email",
            extra={"ticket_number": ticket.ticket_number, "tenant_id": str(ticket.tenant_id)}
        )
        return await self._record(uow, mailbox, message, now, ProcessingOutcome.CREATED, ticket)

    async def _append_message(
        self,
        tickets: TicketService,
        ticket: Ticket,
        message: InboundMessage,
        now: datetime,
    ) -> TicketMessage:
        entry = await tickets.add_message(TicketMessage(
            ticket_id=ticket.id,
            direction=MessageDirection.INBOUND,
            body=message.body,
            created_at=now,
            sender_email=message.sender_email,
            sender_name=message.sender_name,
            html_body=message.html_body,
            external_message_id=message.external_id,
        ))

        for attachment in message.attachments:
            if attachment.size > settings.attachment_max_size_bytes:
                logger.warning(
                    "Attachment too large, not stored",
                    extra={
                        "ticket_number": ticket.ticket_number,
                        "file_name": attachment.file_name,
                        "size": attachment.size,
                    }
                )
                continue
            if attachment.extension not in self._allowed_extensions:
                logger.warning(
                    "Attachment type not allowed, not stored",
                    extra={
                        "ticket_number": ticket.ticket_number,
                        "file_name": attachment.file_name,
                        "extension": attachment.extension,
                    }
                )
                continue
            path = await self._attachments.save(ticket.tenant_id, ticket.id, attachment)
            await tickets.add_attachment(TicketAttachment(
                ticket_id=ticket.id,
                message_id=entry.id,
                file_name=attachment.file_name,
                stored_path=path,
                content_type=attachment.content_type,
                size=attachment.size,
                created_at=now,
            ))
        return entry

    async def _record(
        self,
        uow: "UnitOfWork",
        mailbox: Mailbox,
        message: InboundMessage,
        now: datetime,
        outcome: ProcessingOutcome,
        ticket: Optional[Ticket] = None,
        reason: Optional[str] = None,
    ) -> ProcessingItem:
        await uow.inbound_records.add(InboundMessageRecord(
            tenant_id=mailbox.tenant_id,
            mailbox_id=mailbox.id,
            external_message_id=message.external_id,
            outcome=outcome,
            processed_at=now,
            sender_email=message.sender_email,
            subject=message.subject,
            ticket_id=ticket.id if ticket else None,
            error_message=reason,
        ))
        return ProcessingItem(
            external_message_id=message.external_id,
            outcome=outcome,
            ticket_id=ticket.id if ticket else None,
            ticket_number=ticket.ticket_number if ticket else None,
            reason=reason,
        )

    async def _record_failure(self, mailbox: Mailbox, message: InboundMessage, error: Exception) -> None:
        try:
            async with self._uow() as uow:
                await uow.inbound_records.add(InboundMessageRecord(
                    tenant_id=mailbox.tenant_id,
                    mailbox_id=mailbox.id,
                    external_message_id=message.external_id,
                    outcome=ProcessingOutcome.FAILED,
                    processed_at=utcnow(),
                    sender_email=message.sender_email,
                    subject=message.subject,
                    error_message=str(error)[:2000],
                ))
        except Exception:
            logger.exception(
                "Failed to record message failure",
                extra={"tenant_id": str(mailbox.tenant_id), "external_id": message.external_id}
            )
