"""
Ticket Application Layer
========================

Repository interface and the optimistic-concurrency mutation service.
"""

from supporthub.tickets.application.services import ITicketRepository, TicketService

__all__ = ["ITicketRepository", "TicketService"]
