"""
Ticket Infrastructure Layer
===========================

SQLAlchemy models and repository for tickets, tags, messages and attachments.
"""

from supporthub.tickets.infrastructure.models import (
    TicketAttachmentModel,
    TicketMessageModel,
    TicketModel,
    TicketTagModel,
)
from supporthub.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

__all__ = [
    "TicketAttachmentModel",
    "TicketMessageModel",
    "TicketModel",
    "TicketTagModel",
    "SQLAlchemyTicketRepository",
]
