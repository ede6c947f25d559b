"""
Ticket Domain Layer
===================

Pure business entities with no infrastructure dependencies.
"""

from supporthub.tickets.domain.entities import (
    Ticket,
    TicketAttachment,
    TicketMessage,
    TICKET_NUMBER_PATTERN,
    VALID_TRANSITIONS,
    format_ticket_number,
    normalize_tags,
)

__all__ = [
    "Ticket",
    "TicketAttachment",
    "TicketMessage",
    "TICKET_NUMBER_PATTERN",
    "VALID_TRANSITIONS",
    "format_ticket_number",
    "normalize_tags",
]
