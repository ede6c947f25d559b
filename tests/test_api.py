from datetime import timedelta
from uuid import uuid4

import httpx
import pytest
from fastapi import FastAPI

from supporthub.config import Priority
from supporthub.core import ApplicationException
from supporthub.ingestion.application import IngestionService, IngestionWorker, ReplyService
from supporthub.ingestion.interfaces import ingestion_router
from supporthub.shared.api import (
    CorrelationIDMiddleware, application_exception_handler, global_exception_handler,
)
from supporthub.sla.application import SlaMonitorWorker, SlaService
from supporthub.sla.interfaces import sla_router
from tests.conftest import NOW


@pytest.fixture
def app(uow_factory, mail_provider, attachment_store, notifications):
    app = FastAPI()
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(sla_router)
    app.include_router(ingestion_router)

    ingestion = IngestionService(uow_factory, mail_provider, attachment_store)
    app.state.ingestion_worker = IngestionWorker(uow_factory, ingestion, max_concurrency=1)
    app.state.reply_service = ReplyService(uow_factory, mail_provider)
    app.state.sla_service = SlaService(uow_factory)
    app.state.sla_monitor = SlaMonitorWorker(uow_factory, notifications)
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_unknown_ticket_is_404_with_correlation_id(client):
    response = await client.get(f"/sla/tickets/{uuid4()}", headers={"X-Correlation-ID": "abc"})

    assert response.status_code == 404
    assert response.json()["correlation_id"] == "abc"
    assert response.headers["X-Correlation-ID"] == "abc"


async def test_ticket_sla_status(client, seed):
    tenant = await seed.tenant("acme")
    await seed.policy(tenant.id, Priority.HIGH, 60, 480)
    ticket = await seed.ticket(
        tenant.id, "TKT-20260101-0001", priority=Priority.HIGH,
        created_at=NOW - timedelta(days=30),
    )

    response = await client.get(f"/sla/tickets/{ticket.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "evaluated"
    assert body["urgency"] == "breached"
    assert body["first_response"]["target_minutes"] == 60


async def test_ticket_without_policy(client, seed):
    tenant = await seed.tenant("acme")
    ticket = await seed.ticket(tenant.id, "TKT-20260101-0001")

    body = (await client.get(f"/sla/tickets/{ticket.id}")).json()

    assert body["status"] == "no_policy"
    assert body["first_response"] is None


async def test_run_history_before_and_after_trigger(client):
    assert (await client.get("/sla/runs/last")).status_code == 404
    assert (await client.get("/ingestion/runs/last")).status_code == 404

    triggered = await client.post("/sla/runs")
    assert triggered.status_code == 200
    assert triggered.json()["errors"] == 0

    last = await client.get("/sla/runs/last")
    assert last.json()["run_id"] == triggered.json()["run_id"]

    assert (await client.post("/ingestion/runs")).json()["tenants"] == 0


async def test_reply_endpoint(client, seed, mail_provider):
    tenant = await seed.tenant("acme")
    await seed.mailbox(tenant.id, "support@acme.com")
    ticket = await seed.ticket(tenant.id, "TKT-20260101-0001")

    response = await client.post(
        f"/ingestion/tickets/{ticket.id}/replies", json={"body": "Fixed.", "agent_name": "Dana"}
    )

    assert response.status_code == 201
    assert response.json()["ticket_id"] == str(ticket.id)
    assert len(mail_provider.sent) == 1


async def test_reply_validation_and_provider_errors(client, seed, mail_provider):
    tenant = await seed.tenant("acme")
    ticket = await seed.ticket(tenant.id, "TKT-20260101-0001")

    no_body = await client.post(f"/ingestion/tickets/{ticket.id}/replies", json={"body": ""})
    no_mailbox = await client.post(f"/ingestion/tickets/{ticket.id}/replies", json={"body": "Hi"})

    await seed.mailbox(tenant.id, "support@acme.com")
    mail_provider.fail_send = True
    rejected = await client.post(f"/ingestion/tickets/{ticket.id}/replies", json={"body": "Hi"})

    assert no_body.status_code == 422
    assert no_mailbox.status_code == 422
    assert rejected.status_code == 502
