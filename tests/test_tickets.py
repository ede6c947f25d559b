from datetime import timedelta
from uuid import uuid4

import pytest

from supporthub.config import Priority, TicketSource, TicketStatus
from supporthub.core import ConcurrencyConflictException, InvalidTransitionException
from supporthub.tickets.application import TicketService
from supporthub.tickets.domain import Ticket, format_ticket_number
from tests.conftest import NOW


def make_ticket(**kwargs) -> Ticket:
    defaults = dict(
        id=uuid4(),
        tenant_id=uuid4(),
        ticket_number="TKT-20260101-0001",
        subject="Printer on fire",
        description="Smoke everywhere",
        status=TicketStatus.NEW,
        priority=Priority.MEDIUM,
        source=TicketSource.EMAIL,
        requester_email="alice@acme.com",
        requester_name="Alice",
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(kwargs)
    return Ticket(**defaults)


# ========== Aggregate rules ==========

def test_ticket_number_format():
    assert format_ticket_number(NOW, 7) == "TKT-20260101-0007"


def test_resolve_then_reopen_clears_terminal_timestamps():
    ticket = make_ticket(status=TicketStatus.OPEN)
    ticket.transition_to(TicketStatus.RESOLVED, NOW + timedelta(hours=1))
    ticket.transition_to(TicketStatus.CLOSED, NOW + timedelta(hours=2))
    assert ticket.resolved_at and ticket.closed_at

    ticket.transition_to(TicketStatus.OPEN, NOW + timedelta(hours=3))

    assert ticket.status == TicketStatus.OPEN
    assert ticket.resolved_at is None
    assert ticket.closed_at is None


def test_invalid_transition_raises():
    ticket = make_ticket(status=TicketStatus.CLOSED, closed_at=NOW)
    with pytest.raises(InvalidTransitionException):
        ticket.transition_to(TicketStatus.PENDING, NOW)


def test_open_ticket_cannot_carry_closed_at():
    with pytest.raises(ValueError):
        make_ticket(status=TicketStatus.OPEN, closed_at=NOW)


@pytest.mark.parametrize("status,expected", [
    (TicketStatus.PENDING, TicketStatus.OPEN),
    (TicketStatus.RESOLVED, TicketStatus.OPEN),
    (TicketStatus.ON_HOLD, TicketStatus.ON_HOLD),
    (TicketStatus.NEW, TicketStatus.NEW),
])
def test_customer_reply_reopens_waiting_and_terminal_tickets(status, expected):
    resolved_at = NOW if status == TicketStatus.RESOLVED else None
    ticket = make_ticket(status=status, resolved_at=resolved_at)

    ticket.record_inbound_reply(NOW + timedelta(minutes=5))

    assert ticket.status == expected


def test_first_outbound_message_stops_first_response_clock_once():
    ticket = make_ticket()
    first = NOW + timedelta(minutes=10)

    ticket.record_outbound_message(first)
    ticket.record_outbound_message(first + timedelta(minutes=10))

    assert ticket.first_response_at == first
    assert ticket.status == TicketStatus.OPEN


def test_tags_are_case_insensitive():
    ticket = make_ticket(tags={"Billing"})
    assert ticket.add_tags(["billing", "VIP ", ""]) == ["vip"]
    assert ticket.tags == {"billing", "vip"}


def test_sla_breach_stamp_is_set_once():
    ticket = make_ticket()
    assert ticket.mark_sla_breached(NOW) is True
    assert ticket.mark_sla_breached(NOW + timedelta(hours=1)) is False
    assert ticket.sla_breached_at == NOW


# ========== Store ==========

async def test_versioned_write_detects_stale_state(uow_factory, seed):
    tenant = await seed.tenant()
    model = await seed.ticket(tenant.id, "TKT-20260101-0001")

    async with uow_factory() as uow:
        stale = await uow.tickets.get(model.id)

    async with uow_factory() as uow:
        fresh = await uow.tickets.get(model.id)
        fresh.add_tags(["first-writer"])
        saved = await uow.tickets.save(fresh)
    assert saved.version == 2

    stale.add_tags(["second-writer"])
    with pytest.raises(ConcurrencyConflictException):
        async with uow_factory() as uow:
            await uow.tickets.save(stale)

    async with uow_factory() as uow:
        stored = await uow.tickets.get(model.id)
    assert stored.tags == {"first-writer"}
    assert stored.version == 2


async def test_ticket_numbers_follow_daily_sequence(uow_factory, seed):
    tenant = await seed.tenant()
    await seed.ticket(tenant.id, "TKT-20260101-0007")

    async with uow_factory() as uow:
        assert await uow.tickets.next_ticket_number(NOW) == "TKT-20260101-0008"
        assert await uow.tickets.next_ticket_number(NOW + timedelta(days=1)) == "TKT-20260102-0001"


async def test_lookup_by_number_is_tenant_scoped(uow_factory, seed):
    acme = await seed.tenant("acme")
    globex = await seed.tenant("globex")
    await seed.ticket(acme.id, "TKT-20260101-0001")

    async with uow_factory() as uow:
        assert await uow.tickets.get_by_number(acme.id, "tkt-20260101-0001") is not None
        assert await uow.tickets.get_by_number(globex.id, "TKT-20260101-0001") is None


class ConflictingRepository:
    """Wraps a repository and makes the first ``conflicts`` saves fail."""

    def __init__(self, inner, conflicts):
        self._inner = inner
        self._conflicts = conflicts
        self.saves = 0

    async def get(self, ticket_id):
        return await self._inner.get(ticket_id)

    async def save(self, ticket):
        self.saves += 1
        if self._conflicts:
            self._conflicts -= 1
            # Another writer got there first
            current = await self._inner.get(ticket.id)
            current.add_tags(["other-writer"])
            await self._inner.save(current)
            raise ConcurrencyConflictException(ticket.id, ticket.version)
        return await self._inner.save(ticket)


async def test_mutate_recomputes_against_fresh_state_after_conflict(uow_factory, seed):
    tenant = await seed.tenant()
    model = await seed.ticket(tenant.id, "TKT-20260101-0001")

    async with uow_factory() as uow:
        repo = ConflictingRepository(uow.tickets, conflicts=1)
        ticket, added = await TicketService(repo, max_attempts=3).mutate(
            model.id, lambda t: t.add_tags(["routed"])
        )

    assert repo.saves == 2
    assert added == ["routed"]
    assert ticket.tags == {"routed", "other-writer"}
    assert ticket.version == 3


async def test_mutate_gives_up_after_max_attempts(uow_factory, seed):
    tenant = await seed.tenant()
    model = await seed.ticket(tenant.id, "TKT-20260101-0001")

    async with uow_factory() as uow:
        repo = ConflictingRepository(uow.tickets, conflicts=5)
        with pytest.raises(ConcurrencyConflictException):
            await TicketService(repo, max_attempts=2).mutate(
                model.id, lambda t: t.add_tags(["routed"])
            )
    assert repo.saves == 2


async def test_noop_mutation_does_not_write(uow_factory, seed):
    tenant = await seed.tenant()
    model = await seed.ticket(tenant.id, "TKT-20260101-0001")

    async with uow_factory() as uow:
        repo = ConflictingRepository(uow.tickets, conflicts=0)
        ticket, _ = await TicketService(repo).mutate(model.id, lambda t: None)

    assert repo.saves == 0
    assert ticket.version == 1
