"""
Ticket Infrastructure Repositories
===================================

SQLAlchemy implementation of the ticket store.

Writes are issued as ``UPDATE ... WHERE version = :expected`` so a
concurrent writer is detected by the affected row count rather than by
row locks.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from supporthub.config import (
    MessageDirection, Priority, TicketSource, TicketStatus, OPEN_STATUSES,
)
from supporthub.core import ConcurrencyConflictException
from supporthub.tickets.application.services import ITicketRepository
from supporthub.tickets.domain.entities import (
    Ticket, TicketAttachment, TicketMessage, format_ticket_number,
)
from supporthub.tickets.infrastructure.models import (
    TicketAttachmentModel, TicketMessageModel, TicketModel, TicketTagModel,
)


def to_ticket(model: TicketModel, tags: Set[str]) -> Ticket:
    return Ticket(
        id=model.id,
        tenant_id=model.tenant_id,
        ticket_number=model.ticket_number,
        subject=model.subject,
        description=model.description,
        status=TicketStatus(model.status),
        priority=Priority(model.priority),
        source=TicketSource(model.source),
        requester_email=model.requester_email,
        requester_name=model.requester_name,
        created_at=model.created_at,
        updated_at=model.updated_at,
        assigned_agent_id=model.assigned_agent_id,
        queue_id=model.queue_id,
        system=model.system,
        issue_type=model.issue_type,
        tags=set(tags),
        first_response_at=model.first_response_at,
        resolved_at=model.resolved_at,
        closed_at=model.closed_at,
        sla_paused_at=model.sla_paused_at,
        sla_paused_seconds=model.sla_paused_seconds,
        sla_breached_at=model.sla_breached_at,
        is_deleted=model.is_deleted,
        version=model.version,
    )


def to_message(model: TicketMessageModel) -> TicketMessage:
    return TicketMessage(
        id=model.id,
        ticket_id=model.ticket_id,
        direction=MessageDirection(model.direction),
        body=model.body,
        created_at=model.created_at,
        sender_email=model.sender_email,
        sender_name=model.sender_name,
        html_body=model.html_body,
        external_message_id=model.external_message_id,
    )


def _mutable_columns(ticket: Ticket) -> dict:
    return {
        "subject": ticket.subject,
        "description": ticket.description,
        "status": ticket.status.value,
        "priority": ticket.priority.value,
        "assigned_agent_id": ticket.assigned_agent_id,
        "queue_id": ticket.queue_id,
        "system": ticket.system,
        "issue_type": ticket.issue_type,
        "updated_at": ticket.updated_at,
        "first_response_at": ticket.first_response_at,
        "resolved_at": ticket.resolved_at,
        "closed_at": ticket.closed_at,
        "sla_paused_at": ticket.sla_paused_at,
        "sla_paused_seconds": ticket.sla_paused_seconds,
        "sla_breached_at": ticket.sla_breached_at,
        "is_deleted": ticket.is_deleted,
    }


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of Ticket entities using async SQLAlchemy. The
    caller owns the transaction; this class only flushes.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _load_tags(self, ticket_ids: List[UUID]) -> Dict[UUID, Set[str]]:
        tags: Dict[UUID, Set[str]] = {ticket_id: set() for ticket_id in ticket_ids}
        if not ticket_ids:
            return tags
        stmt = select(TicketTagModel.ticket_id, TicketTagModel.tag).where(
            TicketTagModel.ticket_id.in_(ticket_ids)
        )
        result = await self._session.execute(stmt)
        for ticket_id, tag in result.all():
            tags[ticket_id].add(tag)
        return tags

    async def _to_tickets(self, models: List[TicketModel]) -> List[Ticket]:
        tags = await self._load_tags([m.id for m in models])
        return [to_ticket(m, tags[m.id]) for m in models]

    async def get(self, ticket_id: UUID) -> Optional[Ticket]:
        stmt = (
            select(TicketModel)
            .where(TicketModel.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return (await self._to_tickets([model]))[0]

    async def get_by_number(self, tenant_id: UUID, ticket_number: str) -> Optional[Ticket]:
        stmt = (
            select(TicketModel)
            .where(
                TicketModel.tenant_id == tenant_id,
                TicketModel.ticket_number == ticket_number.upper(),
                TicketModel.is_deleted.is_(False),
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return (await self._to_tickets([model]))[0]

    async def next_ticket_number(self, now: datetime) -> str:
        prefix = format_ticket_number(now, 0)[:-4]
        stmt = select(func.max(TicketModel.ticket_number)).where(
            TicketModel.ticket_number.like(f"{prefix}%")
        )
        result = await self._session.execute(stmt)
        last = result.scalar_one_or_none()
        sequence = int(last[-4:]) + 1 if last else 1
        return format_ticket_number(now, sequence)

    async def create(self, ticket: Ticket) -> Ticket:
        model = TicketModel(
            id=ticket.id,
            tenant_id=ticket.tenant_id,
            ticket_number=ticket.ticket_number,
            source=ticket.source.value,
            requester_email=ticket.requester_email,
            requester_name=ticket.requester_name,
            created_at=ticket.created_at,
            version=1,
            **_mutable_columns(ticket),
        )
        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except IntegrityError:
            raise ConcurrencyConflictException(ticket.ticket_number, 0)

        await self._sync_tags(ticket.id, ticket.tags)
        return replace(ticket, version=1, tags=set(ticket.tags))

    async def save(self, ticket: Ticket) -> Ticket:
        new_version = ticket.version + 1
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket.id, TicketModel.version == ticket.version)
            .values(version=new_version, **_mutable_columns(ticket))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrencyConflictException(ticket.id, ticket.version)

        await self._sync_tags(ticket.id, ticket.tags)
        return replace(ticket, version=new_version, tags=set(ticket.tags))

    async def _sync_tags(self, ticket_id: UUID, tags: Set[str]) -> None:
        stored = (await self._load_tags([ticket_id]))[ticket_id]

        removed = stored - tags
        if removed:
            await self._session.execute(
                delete(TicketTagModel).where(
                    TicketTagModel.ticket_id == ticket_id,
                    TicketTagModel.tag.in_(removed),
                )
            )
        for tag in sorted(tags - stored):
            self._session.add(TicketTagModel(ticket_id=ticket_id, tag=tag))
        await self._session.flush()

    async def add_message(self, message: TicketMessage) -> TicketMessage:
        self._session.add(TicketMessageModel(
            id=message.id,
            ticket_id=message.ticket_id,
            direction=message.direction.value,
            sender_email=message.sender_email,
            sender_name=message.sender_name,
            body=message.body,
            html_body=message.html_body,
            external_message_id=message.external_message_id,
            created_at=message.created_at,
        ))
        await self._session.flush()
        return message

    async def add_attachment(self, attachment: TicketAttachment) -> TicketAttachment:
        self._session.add(TicketAttachmentModel(
            id=attachment.id,
            ticket_id=attachment.ticket_id,
            message_id=attachment.message_id,
            file_name=attachment.file_name,
            stored_path=attachment.stored_path,
            content_type=attachment.content_type,
            size=attachment.size,
            created_at=attachment.created_at,
        ))
        await self._session.flush()
        return attachment

    async def list_messages(self, ticket_id: UUID) -> List[TicketMessage]:
        stmt = (
            select(TicketMessageModel)
            .where(TicketMessageModel.ticket_id == ticket_id)
            .order_by(TicketMessageModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [to_message(m) for m in result.scalars().all()]

    async def list_open(self, tenant_id: Optional[UUID] = None) -> List[Ticket]:
        stmt = select(TicketModel).where(
            TicketModel.status.in_([s.value for s in OPEN_STATUSES]),
            TicketModel.is_deleted.is_(False),
        )
        if tenant_id is not None:
            stmt = stmt.where(TicketModel.tenant_id == tenant_id)
        stmt = stmt.order_by(TicketModel.created_at).execution_options(populate_existing=True)

        result = await self._session.execute(stmt)
        return await self._to_tickets(list(result.scalars().all()))
