"""
Ticket Application Services
============================

Repository interface for the ticket aggregate and the service that wraps
every read-modify-write in an optimistic concurrency retry loop.

Following SOLID principles:
- Dependency Inversion: callers depend on ITicketRepository, not SQLAlchemy
- Single Responsibility: conflict handling lives here and nowhere else
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple, TypeVar
from uuid import UUID, uuid4

from supporthub.config import Priority, TicketSource, TicketStatus, settings
from supporthub.core import ConcurrencyConflictException, ResourceNotFoundException
from supporthub.shared.infrastructure.logging import get_logger
from supporthub.tickets.domain.entities import Ticket, TicketAttachment, TicketMessage

logger = get_logger(__name__)

T = TypeVar("T")


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get(self, ticket_id: UUID) -> Optional[Ticket]:
        """Get ticket by ID, including soft-deleted rows."""

    @abstractmethod
    async def get_by_number(self, tenant_id: UUID, ticket_number: str) -> Optional[Ticket]:
        """Live ticket of ``tenant_id`` carrying ``ticket_number``."""

    @abstractmethod
    async def next_ticket_number(self, now: datetime) -> str:
        """Next free number in today's sequence."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """
        Insert a new ticket.

        Raises:
            ConcurrencyConflictException: the ticket number was taken
        """

    @abstractmethod
    async def save(self, ticket: Ticket) -> Ticket:
        """
        Versioned write of every mutable field.

        Returns the ticket at its new version.

        Raises:
            ConcurrencyConflictException: the stored version moved on
        """

    @abstractmethod
    async def add_message(self, message: TicketMessage) -> TicketMessage:
        """Append a conversational entry."""

    @abstractmethod
    async def add_attachment(self, attachment: TicketAttachment) -> TicketAttachment:
        """Store attachment metadata."""

    @abstractmethod
    async def list_messages(self, ticket_id: UUID) -> List[TicketMessage]:
        """Conversation in chronological order."""

    @abstractmethod
    async def list_open(self, tenant_id: Optional[UUID] = None) -> List[Ticket]:
        """Non-deleted tickets that are not resolved or closed."""


# ========== Application Services ==========

class TicketService:
    """
    Service for mutating tickets safely under concurrent writers.

    Every mutation reloads the ticket, applies a pure function to it and
    writes it back with a version check. On conflict the whole cycle is
    repeated so the mutation is recomputed against the fresh state.
    """

    def __init__(
        self,
        repository: ITicketRepository,
        max_attempts: Optional[int] = None,
    ):
        self._repo = repository
        self._max_attempts = max_attempts or settings.max_conflict_retries

    @property
    def repository(self) -> ITicketRepository:
        return self._repo

    async def get(self, ticket_id: UUID) -> Ticket:
        ticket = await self._repo.get(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", str(ticket_id))
        return ticket

    async def mutate(
        self,
        ticket_id: UUID,
        mutation: Callable[[Ticket], T],
    ) -> Tuple[Ticket, T]:
        """
        Apply ``mutation`` to the current ticket state and persist it.

        Args:
            ticket_id: Ticket to change
            mutation: Function that changes the ticket in place and may
                return a value; it can be called more than once

        Returns:
            (ticket as stored, value returned by the last mutation call)

        Raises:
            ResourceNotFoundException: ticket does not exist
            ConcurrencyConflictException: still conflicting after all attempts
        """
        last_error: Optional[ConcurrencyConflictException] = None

        for attempt in range(1, self._max_attempts + 1):
            ticket = await self.get(ticket_id)
            before = ticket.state_snapshot()

            outcome = mutation(ticket)

            if ticket.state_snapshot() == before:
                return ticket, outcome

            try:
                return await self._repo.save(ticket), outcome
            except ConcurrencyConflictException as e:
                last_error = e
                logger.warning(
                    "Ticket version conflict, retrying",
                    extra={
                        "ticket_id": str(ticket_id),
                        "attempt": attempt,
                        "max_attempts": self._max_attempts,
                    }
                )

        raise last_error

    async def open_ticket(
        self,
        tenant_id: UUID,
        subject: str,
        description: str,
        requester_email: str,
        requester_name: str,
        now: datetime,
        priority: Priority = Priority.MEDIUM,
        source: TicketSource = TicketSource.EMAIL,
    ) -> Ticket:
        """
        Create a ticket with the next free number.

        A number collision with a concurrent creator is retried with the
        following number.
        """
        last_error: Optional[ConcurrencyConflictException] = None

        for attempt in range(1, self._max_attempts + 1):
            ticket = Ticket(
                id=uuid4(),
                tenant_id=tenant_id,
                ticket_number=await self._repo.next_ticket_number(now),
                subject=subject,
                description=description,
                status=TicketStatus.NEW,
                priority=priority,
                source=source,
                requester_email=requester_email,
                requester_name=requester_name,
                created_at=now,
                updated_at=now,
            )
            try:
                return await self._repo.create(ticket)
            except ConcurrencyConflictException as e:
                last_error = e
                logger.warning(
                    "Ticket number taken, retrying",
                    extra={"ticket_number": ticket.ticket_number, "attempt": attempt}
                )

        raise last_error

    async def add_message(self, message: TicketMessage) -> TicketMessage:
        return await self._repo.add_message(message)

    async def add_attachment(self, attachment: TicketAttachment) -> TicketAttachment:
        return await self._repo.add_attachment(attachment)
