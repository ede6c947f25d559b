import asyncio
from uuid import UUID

import httpx
import pytest
from sqlalchemy import func, select

from supporthub.config import (
    THREADING_HEADER, MessageDirection, ProcessingOutcome, RuleMatchOperator, RuleMatchType,
    Settings, TicketStatus, settings,
)
from supporthub.core import MailProviderException, ValidationException
from supporthub.ingestion.application import (
    IngestionService, IngestionWorker, MessageMatcher, ReplyService,
)
from supporthub.ingestion.domain import MailAttachment
from supporthub.ingestion.infrastructure import GraphMailProvider, InboundMessageRecordModel
from supporthub.shared.infrastructure import AuditLogModel
from supporthub.tickets.infrastructure.models import TicketMessageModel, TicketModel
from tests.conftest import FakeMailProvider, make_message


async def count(session_maker, model, *where) -> int:
    async with session_maker() as session:
        stmt = select(func.count()).select_from(model)
        if where:
            stmt = stmt.where(*where)
        return (await session.execute(stmt)).scalar_one()


@pytest.fixture
def service(uow_factory, mail_provider, attachment_store):
    return IngestionService(
        uow_factory, mail_provider, attachment_store, ignored_senders=("mailer-daemon@*",)
    )


@pytest.fixture
async def acme(seed):
    tenant = await seed.tenant("acme")
    mailbox = await seed.mailbox(tenant.id, "support@acme.com", ignored_senders="noreply@*")
    tier1 = await seed.queue(tenant.id, "Tier1")
    security = await seed.queue(tenant.id, "Security")
    default = await seed.queue(tenant.id, "Triage", is_default=True)
    await seed.rule(tenant.id, tier1.id, 1, RuleMatchType.SENDER_DOMAIN,
                    RuleMatchOperator.EQUALS, "@acme.com", add_tags="password")
    await seed.rule(tenant.id, security.id, 2, RuleMatchType.SUBJECT_KEYWORD,
                    RuleMatchOperator.CONTAINS, "password")
    return {"tenant": tenant, "mailbox": mailbox, "tier1": tier1,
            "security": security, "default": default}


async def load_mailbox(uow_factory, mailbox_id: UUID):
    async with uow_factory() as uow:
        return await uow.tenants.get_mailbox(mailbox_id)


async def test_new_message_creates_and_routes_ticket(service, uow_factory, acme, attachment_store):
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)
    message = make_message(
        "m-1", attachments=[MailAttachment("log.txt", "text/plain", b"stack trace")]
    )

    item = await service.process_message(mailbox, message)

    assert item.outcome == ProcessingOutcome.CREATED
    async with uow_factory() as uow:
        ticket = await uow.tickets.get(item.ticket_id)
        messages = await uow.tickets.list_messages(ticket.id)
    assert ticket.status == TicketStatus.NEW
    assert ticket.queue_id == acme["tier1"].id
    assert ticket.tags == {"password"}
    assert [m.direction for m in messages] == [MessageDirection.INBOUND]
    assert len(attachment_store.saved) == 1


async def test_duplicate_message_is_skipped_without_writes(service, uow_factory, session_maker, acme):
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)
    await service.process_message(mailbox, make_message("m-1"))

    item = await service.process_message(mailbox, make_message("m-1"))

    assert item.outcome == ProcessingOutcome.SKIPPED
    assert item.reason == "duplicate"
    assert await count(session_maker, TicketModel) == 1
    assert await count(session_maker, TicketMessageModel) == 1
    assert await count(session_maker, InboundMessageRecordModel) == 1


async def test_reply_by_header_reopens_closed_ticket(service, uow_factory, session_maker, seed, acme):
    closed = await seed.ticket(acme["tenant"].id, "TKT-20260101-0007", status=TicketStatus.CLOSED)
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    item = await service.process_message(mailbox, make_message(
        "m-2", subject="Still broken", headers={THREADING_HEADER: "TKT-20260101-0007"}
    ))

    assert item.outcome == ProcessingOutcome.APPENDED
    assert item.ticket_id == closed.id
    async with uow_factory() as uow:
        ticket = await uow.tickets.get(closed.id)
        messages = await uow.tickets.list_messages(closed.id)
    assert ticket.status == TicketStatus.OPEN
    assert ticket.resolved_at is None
    assert ticket.closed_at is None
    assert len(messages) == 1
    assert await count(session_maker, TicketModel) == 1


async def test_reply_by_subject_token_is_appended(service, uow_factory, seed, acme):
    pending = await seed.ticket(acme["tenant"].id, "TKT-20260101-0003", status=TicketStatus.PENDING)
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    item = await service.process_message(
        mailbox, make_message("m-3", subject="RE: [SH-TKT-20260101-0003] Printer on fire")
    )

    assert item.outcome == ProcessingOutcome.APPENDED
    assert item.ticket_id == pending.id


async def test_token_of_another_tenant_starts_a_new_ticket(service, uow_factory, seed, acme):
    globex = await seed.tenant("globex")
    foreign = await seed.ticket(globex.id, "TKT-20260101-0009")
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    item = await service.process_message(mailbox, make_message(
        "m-4", headers={THREADING_HEADER: "TKT-20260101-0009"}
    ))

    assert item.outcome == ProcessingOutcome.CREATED
    assert item.ticket_id != foreign.id


async def test_ignored_senders_are_recorded_as_skipped(service, uow_factory, session_maker, acme):
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    own = await service.process_message(mailbox, make_message("m-5", sender="noreply@acme.com"))
    common = await service.process_message(mailbox, make_message("m-6", sender="MAILER-DAEMON@relay.net"))

    assert own.outcome == common.outcome == ProcessingOutcome.SKIPPED
    assert await count(session_maker, TicketModel) == 0
    assert await count(session_maker, InboundMessageRecordModel) == 2


async def test_auto_create_disabled_skips_new_conversations(service, uow_factory, seed):
    tenant = await seed.tenant("initech")
    mailbox_model = await seed.mailbox(tenant.id, "help@initech.com", auto_create_tickets=False)
    mailbox = await load_mailbox(uow_factory, mailbox_model.id)

    item = await service.process_message(mailbox, make_message("m-7"))

    assert item.outcome == ProcessingOutcome.SKIPPED
    assert item.reason == "auto-create disabled"


async def test_failing_message_does_not_stop_the_batch(
    service, uow_factory, session_maker, mail_provider, attachment_store, acme, monkeypatch
):
    async def broken_save(tenant_id, ticket_id, attachment):
        raise OSError("disk full")

    monkeypatch.setattr(attachment_store, "save", broken_save)
    mail_provider.deliver(
        "support@acme.com",
        make_message("bad", attachments=[MailAttachment("a.pdf", "application/pdf", b"x")]),
        make_message("good", sender="carol@acme.com"),
    )
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    batch = await service.poll_mailbox(mailbox)

    assert [i.outcome for i in batch.items] == [ProcessingOutcome.FAILED, ProcessingOutcome.CREATED]
    # The failed message left nothing behind but its record
    assert await count(session_maker, TicketModel) == 1
    assert await count(session_maker, InboundMessageRecordModel,
                       InboundMessageRecordModel.outcome == "failed") == 1
    assert mail_provider.processed == ["bad", "good"]


async def test_provider_outage_aborts_batch_before_any_write(
    service, uow_factory, session_maker, mail_provider, acme
):
    mail_provider.failing_mailboxes.add("support@acme.com")
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    batch = await service.poll_mailbox(mailbox)

    assert batch.error
    assert batch.items == []
    stored = await load_mailbox(uow_factory, acme["mailbox"].id)
    assert stored.last_polled_at is None


async def test_worker_isolates_tenants(uow_factory, session_maker, seed, mail_provider, service, acme):
    globex = await seed.tenant("globex")
    await seed.mailbox(globex.id, "help@globex.com")
    mail_provider.failing_mailboxes.add("help@globex.com")
    mail_provider.deliver("support@acme.com", make_message("m-8"))

    worker = IngestionWorker(uow_factory, service, max_concurrency=1)
    summary = await worker.run()

    assert summary.tenants == 2
    assert summary.created == 1
    assert summary.errors == 1
    assert worker.last_run is summary

    # Mailboxes polled in this run are not due again yet
    again = await worker.run()
    assert again.created == 0


async def test_stopped_worker_processes_nothing(uow_factory, mail_provider, service, acme):
    mail_provider.deliver("support@acme.com", make_message("m-9"))
    stop_event = asyncio.Event()
    stop_event.set()

    summary = await IngestionWorker(uow_factory, service, max_concurrency=1).run(stop_event)

    assert summary.stopped is True
    assert summary.created == 0


async def test_matcher_prefers_header_over_subject(uow_factory, seed, acme):
    by_header = await seed.ticket(acme["tenant"].id, "TKT-20260101-0001")
    await seed.ticket(acme["tenant"].id, "TKT-20260101-0002")

    async with uow_factory() as uow:
        result = await MessageMatcher(uow.tickets).match(acme["tenant"].id, make_message(
            "m-10",
            subject="Re: [SH-TKT-20260101-0002] Printer",
            headers={THREADING_HEADER.lower(): "TKT-20260101-0001"},
        ))

    assert result.ticket.id == by_header.id
    assert result.matched_by == "header"


async def test_agent_reply_carries_threading_contract(uow_factory, session_maker, seed, mail_provider, acme):
    ticket = await seed.ticket(acme["tenant"].id, "TKT-20260101-0005", status=TicketStatus.NEW)

    message = await ReplyService(uow_factory, mail_provider).send_reply(ticket.id, "On it.", "Dana")

    sent = mail_provider.sent[0]
    assert sent["to"] == "alice@acme.com"
    assert sent["subject"] == "Re: [SH-TKT-20260101-0005] Printer on fire"
    assert sent["headers"] == {THREADING_HEADER: "TKT-20260101-0005"}
    async with uow_factory() as uow:
        stored = await uow.tickets.get(ticket.id)
    assert stored.first_response_at == message.created_at
    assert stored.status == TicketStatus.OPEN
    assert await count(session_maker, AuditLogModel, AuditLogModel.action == "ticket.reply_sent") == 1


async def test_rejected_send_rolls_back_the_reply(uow_factory, session_maker, seed, mail_provider, acme):
    ticket = await seed.ticket(acme["tenant"].id, "TKT-20260101-0005", status=TicketStatus.NEW)
    mail_provider.fail_send = True

    with pytest.raises(MailProviderException):
        await ReplyService(uow_factory, mail_provider).send_reply(ticket.id, "On it.")

    async with uow_factory() as uow:
        stored = await uow.tickets.get(ticket.id)
    assert stored.first_response_at is None
    assert await count(session_maker, TicketMessageModel) == 0


async def test_empty_reply_is_rejected(uow_factory, mail_provider):
    with pytest.raises(ValidationException):
        await ReplyService(uow_factory, mail_provider).send_reply(UUID(int=1), "   ")


# ========== Backlogs and stopped batches ==========

class GraphInbox:
    """Graph inbox that honours ``$filter`` on receivedDateTime/isRead and ``$top``."""

    def __init__(self, *received):
        self.messages = {
            f"m{i}": {"receivedDateTime": at, "isRead": False} for i, at in enumerate(received)
        }

    @property
    def unread(self):
        return sorted(k for k, m in self.messages.items() if not m["isRead"])

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "login.microsoftonline.com":
            return httpx.Response(200, json={"access_token": "t0k", "expires_in": 3600})
        if request.method == "PATCH":
            message_id = request.url.path.rsplit("/", 1)[-1]
            self.messages[message_id]["isRead"] = True
            return httpx.Response(200, json={})

        lower_bound = request.url.params["$filter"].split(" gt ")[1].split(" and ")[0]
        top = int(request.url.params["$top"])
        listed = sorted(
            (m["receivedDateTime"], k) for k, m in self.messages.items()
            if not m["isRead"] and m["receivedDateTime"] > lower_bound
        )[:top]
        return httpx.Response(200, json={"value": [{
            "id": k,
            "subject": f"Issue {k}",
            "from": {"emailAddress": {"address": "alice@acme.com", "name": "Alice"}},
            "body": {"contentType": "text", "content": "Help"},
            "receivedDateTime": at,
            "hasAttachments": False,
        } for at, k in listed]})


async def test_backlog_larger_than_batch_is_drained_over_polls(
    uow_factory, session_maker, attachment_store, acme
):
    inbox = GraphInbox("2026-01-01T11:50:00Z", "2026-01-01T11:51:00Z", "2026-01-01T11:52:00Z")
    provider = GraphMailProvider(
        "tid", "cid", "secret",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(inbox.handler)),
    )
    service = IngestionService(uow_factory, provider, attachment_store, batch_size=2)

    first = await service.poll_mailbox(await load_mailbox(uow_factory, acme["mailbox"].id))
    assert first.truncated is True
    assert (await load_mailbox(uow_factory, acme["mailbox"].id)).last_polled_at is None

    for _ in range(2):
        await service.poll_mailbox(await load_mailbox(uow_factory, acme["mailbox"].id))

    assert inbox.unread == []
    assert await count(session_maker, TicketModel) == 3
    assert (await load_mailbox(uow_factory, acme["mailbox"].id)).last_polled_at is not None


async def test_stopped_batch_keeps_watermark(service, uow_factory, mail_provider, acme):
    mail_provider.deliver("support@acme.com", make_message("m-11"), make_message("m-12"))
    stop_event = asyncio.Event()
    stop_event.set()

    batch = await service.poll_mailbox(await load_mailbox(uow_factory, acme["mailbox"].id), stop_event)

    assert batch.stopped is True
    assert batch.items == []
    assert (await load_mailbox(uow_factory, acme["mailbox"].id)).last_polled_at is None

    again = await service.poll_mailbox(await load_mailbox(uow_factory, acme["mailbox"].id))
    assert again.created == 2


async def test_run_summary_totals_batches(uow_factory, mail_provider, service, acme):
    mail_provider.deliver("support@acme.com", make_message("m-13"), make_message(
        "m-14", sender="noreply@acme.com"
    ))

    summary = await IngestionWorker(uow_factory, service, max_concurrency=1).run()

    assert (summary.created, summary.appended, summary.skipped, summary.failed) == (1, 0, 1, 0)
    assert summary.to_dict()["created"] == 1


# ========== Attachments ==========

async def test_disallowed_and_oversized_attachments_are_not_stored(
    service, uow_factory, attachment_store, acme, monkeypatch
):
    monkeypatch.setattr(settings, "attachment_max_size_bytes", 10)
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    item = await service.process_message(mailbox, make_message("m-15", attachments=[
        MailAttachment("invoice.PDF", "application/pdf", b"%PDF"),
        MailAttachment("setup.exe", "application/octet-stream", b"MZ"),
        MailAttachment("payload.js", "text/javascript", b"alert()"),
        MailAttachment("scan.png", "image/png", b"x" * 11),
    ]))

    assert item.outcome == ProcessingOutcome.CREATED
    assert [path.rsplit("/", 1)[-1] for path in attachment_store.saved] == ["invoice.PDF"]
    async with uow_factory() as uow:
        messages = await uow.tickets.list_messages(item.ticket_id)
    assert len(messages) == 1


def test_attachment_extension():
    assert MailAttachment("Report.Final.DOCX", "x", b"").extension == ".docx"
    assert MailAttachment("C:\\temp\\notes.txt", "x", b"").extension == ".txt"
    assert MailAttachment("README", "x", b"").extension == ""


def test_allowed_extensions_setting_is_normalized():
    configured = Settings(attachment_allowed_extensions=["PDF", " .Txt ", ""])
    assert configured.attachment_allowed_extensions == [".pdf", ".txt"]


async def test_explicit_allowed_extensions_override_settings(uow_factory, mail_provider, attachment_store, acme):
    service = IngestionService(uow_factory, mail_provider, attachment_store, allowed_extensions=[".EXE"])
    mailbox = await load_mailbox(uow_factory, acme["mailbox"].id)

    await service.process_message(mailbox, make_message("m-17", attachments=[
        MailAttachment("tool.exe", "application/octet-stream", b"MZ"),
        MailAttachment("notes.txt", "text/plain", b"hi"),
    ]))

    assert [path.rsplit("/", 1)[-1] for path in attachment_store.saved] == ["tool.exe"]


# ========== Shutdown ==========

class GatedMailProvider(FakeMailProvider):
    """Holds every listing until ``gate`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.listing = asyncio.Event()

    async def list_unseen_messages(self, mailbox, since, limit: int = 50):
        self.listing.set()
        await self.gate.wait()
        return await super().list_unseen_messages(mailbox, since, limit)


async def test_wait_idle_returns_after_the_run_in_progress(uow_factory, attachment_store, acme):
    provider = GatedMailProvider()
    provider.deliver("support@acme.com", make_message("m-16"))
    worker = IngestionWorker(uow_factory, IngestionService(uow_factory, provider, attachment_store))

    run = asyncio.create_task(worker.run())
    await provider.listing.wait()
    idle = asyncio.create_task(worker.wait_idle())
    await asyncio.sleep(0)
    assert not idle.done()

    provider.gate.set()
    await idle
    assert run.done()
    assert (await run).created == 1
    assert provider.processed == ["m-16"]


async def test_wait_idle_without_a_run_returns_at_once(uow_factory, service):
    await asyncio.wait_for(IngestionWorker(uow_factory, service).wait_idle(), timeout=1)
