"""
Shared fixtures: a file-backed SQLite database per test, seed helpers and
in-memory fakes for the mail provider, attachment store and notifications.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine

from supporthub.config import (
    BreachKind, Priority, RuleMatchOperator, RuleMatchType, TicketSource, TicketStatus,
)
from supporthub.core import MailProviderException, NotificationException
from supporthub.infrastructure.database import create_session_maker, create_tables
from supporthub.infrastructure.unit_of_work import SQLAlchemyUnitOfWorkFactory
from supporthub.ingestion.application.interfaces import IAttachmentStore, IMailProvider
from supporthub.ingestion.domain.entities import InboundMessage, MailAttachment
from supporthub.routing.infrastructure.models import RoutingRuleModel
from supporthub.sla.application.services import INotificationSink
from supporthub.sla.infrastructure.models import SlaPolicyModel
from supporthub.tenancy.domain.entities import Mailbox
from supporthub.tenancy.infrastructure.models import MailboxModel, QueueModel, TenantModel
from supporthub.tickets.infrastructure.models import TicketModel

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


# ========== Database ==========

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/pipeline.db")

    # pysqlite's own transaction handling breaks SAVEPOINT; take over BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
def uow_factory(session_maker):
    return SQLAlchemyUnitOfWorkFactory(session_maker)


class Seeder:
    """Writes admin-owned rows the pipeline only reads."""

    def __init__(self, session_maker):
        self._session_maker = session_maker

    async def _add(self, model):
        async with self._session_maker() as session:
            async with session.begin():
                session.add(model)
        return model

    async def tenant(self, code: str = "acme", name: Optional[str] = None) -> TenantModel:
        return await self._add(TenantModel(id=uuid4(), code=code, name=name or code.title()))

    async def queue(self, tenant_id: UUID, name: str, is_default: bool = False) -> QueueModel:
        return await self._add(QueueModel(
            id=uuid4(), tenant_id=tenant_id, name=name, is_default=is_default
        ))

    async def mailbox(
        self,
        tenant_id: UUID,
        address: str,
        auto_create_tickets: bool = True,
        ignored_senders: Optional[str] = None,
        default_priority: Priority = Priority.MEDIUM,
    ) -> MailboxModel:
        return await self._add(MailboxModel(
            id=uuid4(),
            tenant_id=tenant_id,
            address=address,
            display_name=f"{address} support",
            auto_create_tickets=auto_create_tickets,
            ignored_senders=ignored_senders,
            default_priority=default_priority.value,
        ))

    async def rule(
        self,
        tenant_id: UUID,
        queue_id: UUID,
        sort_order: int,
        match_type: RuleMatchType,
        operator: RuleMatchOperator,
        match_value: str,
        name: Optional[str] = None,
        is_active: bool = True,
        add_tags: Optional[str] = None,
        set_priority: Optional[Priority] = None,
    ) -> RoutingRuleModel:
        return await self._add(RoutingRuleModel(
            id=uuid4(),
            tenant_id=tenant_id,
            name=name or f"rule-{sort_order}",
            match_type=match_type.value,
            match_operator=operator.value,
            match_value=match_value,
            sort_order=sort_order,
            is_active=is_active,
            queue_id=queue_id,
            auto_add_tags=add_tags,
            auto_set_priority=set_priority.value if set_priority else None,
        ))

    async def policy(
        self,
        tenant_id: UUID,
        priority: Priority,
        first_response_minutes: int,
        resolution_minutes: int,
    ) -> SlaPolicyModel:
        return await self._add(SlaPolicyModel(
            id=uuid4(),
            tenant_id=tenant_id,
            priority=priority.value,
            first_response_minutes=first_response_minutes,
            resolution_minutes=resolution_minutes,
        ))

    async def ticket(
        self,
        tenant_id: UUID,
        ticket_number: str,
        status: TicketStatus = TicketStatus.OPEN,
        priority: Priority = Priority.MEDIUM,
        created_at: datetime = NOW,
        requester_email: str = "alice@acme.com",
        subject: str = "Printer on fire",
        first_response_at: Optional[datetime] = None,
    ) -> TicketModel:
        resolved_at = created_at + timedelta(hours=1) if status in (
            TicketStatus.RESOLVED, TicketStatus.CLOSED) else None
        closed_at = created_at + timedelta(hours=2) if status == TicketStatus.CLOSED else None
        return await self._add(TicketModel(
            id=uuid4(),
            tenant_id=tenant_id,
            ticket_number=ticket_number,
            subject=subject,
            description="",
            status=status.value,
            priority=priority.value,
            source=TicketSource.EMAIL.value,
            requester_email=requester_email,
            requester_name="",
            created_at=created_at,
            updated_at=closed_at or resolved_at or created_at,
            first_response_at=first_response_at,
            resolved_at=resolved_at,
            closed_at=closed_at,
            version=1,
        ))


@pytest.fixture
def seed(session_maker) -> Seeder:
    return Seeder(session_maker)


# ========== Fakes ==========

def make_message(
    external_id: str,
    sender: str = "alice@acme.com",
    subject: str = "Password reset",
    body: str = "I cannot log in.",
    headers: Optional[Dict[str, str]] = None,
    attachments=(),
) -> InboundMessage:
    return InboundMessage(
        external_id=external_id,
        sender_email=sender,
        subject=subject,
        body=body,
        received_at=NOW,
        sender_name=sender.split("@")[0].title(),
        headers=headers or {},
        attachments=tuple(attachments),
    )


class FakeMailProvider(IMailProvider):
    """Serves queued messages per mailbox address and records sends."""

    def __init__(self):
        self.inboxes: Dict[str, List[InboundMessage]] = {}
        self.failing_mailboxes: set = set()
        self.processed: List[str] = []
        self.sent: List[dict] = []
        self.fail_send = False

    def deliver(self, address: str, *messages: InboundMessage) -> None:
        self.inboxes.setdefault(address, []).extend(messages)

    async def list_unseen_messages(self, mailbox: Mailbox, since, limit: int = 50):
        if mailbox.address in self.failing_mailboxes:
            raise MailProviderException("503 from provider")
        return [
            m for m in self.inboxes.get(mailbox.address, [])
            if m.external_id not in self.processed
        ][:limit]

    async def mark_processed(self, mailbox: Mailbox, external_id: str) -> None:
        self.processed.append(external_id)

    async def send(self, mailbox: Mailbox, to: str, subject: str, body: str, headers) -> None:
        if self.fail_send:
            raise MailProviderException("send rejected")
        self.sent.append({
            "from": mailbox.address, "to": to, "subject": subject,
            "body": body, "headers": dict(headers),
        })


class FakeAttachmentStore(IAttachmentStore):
    def __init__(self):
        self.saved: Dict[str, bytes] = {}

    async def save(self, tenant_id: UUID, ticket_id: UUID, attachment: MailAttachment) -> str:
        path = f"{tenant_id}/{ticket_id}/{attachment.file_name}"
        self.saved[path] = attachment.content
        return path


class FakeNotificationSink(INotificationSink):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.breaches: List[tuple] = []
        self.warnings: List[tuple] = []

    async def notify_breach(self, ticket_id, breach_kind: BreachKind, ticket_number=None):
        if self.fail:
            raise NotificationException("webhook down")
        self.breaches.append((ticket_id, breach_kind))

    async def notify_warning(self, ticket_id, breach_kind: BreachKind, minutes_remaining: int,
                             ticket_number=None):
        if self.fail:
            raise NotificationException("webhook down")
        self.warnings.append((ticket_id, breach_kind, minutes_remaining))


@pytest.fixture
def mail_provider() -> FakeMailProvider:
    return FakeMailProvider()


@pytest.fixture
def attachment_store() -> FakeAttachmentStore:
    return FakeAttachmentStore()


@pytest.fixture
def notifications() -> FakeNotificationSink:
    return FakeNotificationSink()
