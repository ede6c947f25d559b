"""
Unit of Work
============

One database transaction with every repository bound to it.

Workers open a unit of work per item (message, ticket) so a failure rolls
back exactly that item's writes:

    async with uow_factory() as uow:
        ticket = await uow.tickets.get(ticket_id)
        ...
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supporthub.ingestion.application.interfaces import IInboundMessageRecordRepository
from supporthub.ingestion.infrastructure.repositories import (
    SQLAlchemyInboundMessageRecordRepository,
)
from supporthub.routing.application.services import IRoutingRuleRepository
from supporthub.routing.infrastructure.repositories import SQLAlchemyRoutingRuleRepository
from supporthub.shared.application.audit import IAuditSink
from supporthub.shared.infrastructure.audit import SQLAlchemyAuditSink
from supporthub.sla.application.services import ISlaPolicyRepository, ISlaRecordRepository
from supporthub.sla.infrastructure.repositories import (
    SQLAlchemySlaPolicyRepository,
    SQLAlchemySlaRecordRepository,
)
from supporthub.tenancy.application.services import ITenantDirectory
from supporthub.tenancy.infrastructure.repositories import SQLAlchemyTenantDirectory
from supporthub.tickets.application.services import ITicketRepository
from supporthub.tickets.infrastructure.repositories import SQLAlchemyTicketRepository


@dataclass
class UnitOfWork:
    """Repositories sharing one session and one transaction."""
    session: AsyncSession
    tenants: ITenantDirectory
    tickets: ITicketRepository
    rules: IRoutingRuleRepository
    inbound_records: IInboundMessageRecordRepository
    sla_policies: ISlaPolicyRepository
    sla_records: ISlaRecordRepository
    audit: IAuditSink


UnitOfWorkFactory = Callable[[], AsyncContextManager[UnitOfWork]]


class SQLAlchemyUnitOfWorkFactory:
    """
    Opens a session, begins a transaction and yields a UnitOfWork.

    Commits when the block exits normally, rolls back when it raises.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[UnitOfWork]:
        async with self._session_maker() as session:
            async with session.begin():
                yield UnitOfWork(
                    session=session,
                    tenants=SQLAlchemyTenantDirectory(session),
                    tickets=SQLAlchemyTicketRepository(session),
                    rules=SQLAlchemyRoutingRuleRepository(session),
                    inbound_records=SQLAlchemyInboundMessageRecordRepository(session),
                    sla_policies=SQLAlchemySlaPolicyRepository(session),
                    sla_records=SQLAlchemySlaRecordRepository(session),
                    audit=SQLAlchemyAuditSink(session),
                )
