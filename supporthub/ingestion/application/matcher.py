"""
Message matcher.

Decides whether an inbound message continues an existing ticket of the
same tenant or starts a new conversation.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from supporthub.ingestion.domain.entities import InboundMessage
from supporthub.ingestion.domain.reply_threading import (
    header_ticket_number, subject_ticket_number,
)
from supporthub.tickets.application.services import ITicketRepository
from supporthub.tickets.domain.entities import Ticket

MATCHED_BY_HEADER = "header"
MATCHED_BY_SUBJECT = "subject"


@dataclass(frozen=True)
class MatchResult:
    ticket: Optional[Ticket] = None
    matched_by: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return self.ticket is None


class MessageMatcher:
    """
    Header first, then subject token, else new ticket.

    Lookups are scoped to the tenant, so a token naming another tenant's
    ticket simply finds nothing.
    """

    def __init__(self, tickets: ITicketRepository):
        self._tickets = tickets

    async def match(self, tenant_id: UUID, message: InboundMessage) -> MatchResult:
        number = header_ticket_number(message)
        if number:
            ticket = await self._tickets.get_by_number(tenant_id, number)
            if ticket is not None:
                return MatchResult(ticket, MATCHED_BY_HEADER)

        number = subject_ticket_number(message.subject)
        if number:
            ticket = await self._tickets.get_by_number(tenant_id, number)
            if ticket is not None:
                return MatchResult(ticket, MATCHED_BY_SUBJECT)

        return MatchResult()
