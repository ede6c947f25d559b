"""
Agent reply sending.

Replies carry the threading header and subject token so the customer's
answer is matched back to the same ticket.
"""

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from supporthub.config import MessageDirection
from supporthub.core import ValidationException
from supporthub.infrastructure.database import utcnow
from supporthub.ingestion.application.interfaces import IMailProvider
from supporthub.ingestion.domain.reply_threading import compose_reply_subject, threading_headers
from supporthub.shared.application.audit import AuditEvent
from supporthub.shared.infrastructure.logging import get_logger
from supporthub.tickets.application.services import TicketService
from supporthub.tickets.domain.entities import TicketMessage

if TYPE_CHECKING:
    from supporthub.infrastructure.unit_of_work import UnitOfWorkFactory

logger = get_logger(__name__)


class ReplyService:
    """Send an agent reply and record it on the ticket."""

    def __init__(self, uow_factory: "UnitOfWorkFactory", mail_provider: IMailProvider):
        self._uow = uow_factory
        self._provider = mail_provider

    async def send_reply(
        self,
        ticket_id: UUID,
        body: str,
        agent_name: Optional[str] = None,
    ) -> TicketMessage:
        """
        Record the reply, then hand it to the mail provider.

        The send is the last step of the transaction, so a rejected send
        rolls back the recorded message.

        Raises:
            ResourceNotFoundException: ticket does not exist
            ValidationException: empty body or no active mailbox
            MailProviderException: the provider refused the message
        """
        if not body or not body.strip():
            raise ValidationException("Reply body cannot be empty")

        now = utcnow()
        async with self._uow() as uow:
            tickets = TicketService(uow.tickets)
            ticket = await tickets.get(ticket_id)

            mailboxes = await uow.tenants.list_active_mailboxes(ticket.tenant_id)
            if not mailboxes:
                raise ValidationException(
                    "Tenant has no active mailbox to send from",
                    {"tenant_id": str(ticket.tenant_id)}
                )
            mailbox = mailboxes[0]

            ticket, _ = await tickets.mutate(ticket_id, lambda t: t.record_outbound_message(now))
            entry = await tickets.add_message(TicketMessage(
                ticket_id=ticket.id,
                direction=MessageDirection.OUTBOUND,
                body=body,
                created_at=now,
                sender_email=mailbox.address,
                sender_name=agent_name or mailbox.display_name,
            ))

            subject = compose_reply_subject(ticket.ticket_number, ticket.subject)
            await uow.audit.record(AuditEvent(
                action="ticket.reply_sent",
                entity_type="Ticket",
                entity_id=ticket.id,
                tenant_id=ticket.tenant_id,
                timestamp=now,
                new_values={
                    "message_id": str(entry.id),
                    "to": ticket.requester_email,
                    "subject": subject,
                    "status": ticket.status.value,
                },
            ))

            await self._provider.send(
                mailbox,
                to=ticket.requester_email,
                subject=subject,
                body=body,
                headers=threading_headers(ticket.ticket_number),
            )

        logger.info(
            "Reply sent",
            extra={"ticket_number": ticket.ticket_number, "mailbox": mailbox.address}
        )
        return entry
