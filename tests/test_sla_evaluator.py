from datetime import timedelta
from uuid import uuid4

import pytest

from supporthub.config import BreachKind, Priority, TicketStatus, UrgencyTier
from supporthub.sla.domain import SlaEvaluator, SlaPolicy, UrgencyThresholds
from tests.conftest import NOW
from tests.test_tickets import make_ticket

THRESHOLDS = UrgencyThresholds(warning_percent=50, critical_percent=25)


def high_policy(tenant_id) -> SlaPolicy:
    return SlaPolicy(
        id=uuid4(),
        tenant_id=tenant_id,
        priority=Priority.HIGH,
        first_response_minutes=60,
        resolution_minutes=480,
    )


def evaluate_at(minutes: float, **ticket_kwargs):
    ticket = make_ticket(priority=Priority.HIGH, **ticket_kwargs)
    return SlaEvaluator.evaluate(
        ticket, high_policy(ticket.tenant_id), NOW + timedelta(minutes=minutes), THRESHOLDS
    )


@pytest.mark.parametrize("percent,tier", [
    (100, UrgencyTier.ON_TRACK),
    (50.01, UrgencyTier.ON_TRACK),
    (50, UrgencyTier.WARNING),
    (25.01, UrgencyTier.WARNING),
    (25, UrgencyTier.CRITICAL),
    (0.01, UrgencyTier.CRITICAL),
    (0, UrgencyTier.BREACHED),
    (-10, UrgencyTier.BREACHED),
])
def test_tier_boundaries(percent, tier):
    assert THRESHOLDS.tier_for(percent) == tier


def test_exactly_at_target_is_breached():
    status = evaluate_at(60)

    assert status.first_response.urgency == UrgencyTier.BREACHED
    assert status.first_response.remaining_seconds <= 0


def test_fifty_minutes_into_a_sixty_minute_target_is_critical():
    clock = evaluate_at(50).first_response

    assert clock.urgency == UrgencyTier.CRITICAL
    assert clock.percent_remaining == pytest.approx(16.67, abs=0.01)
    assert clock.minutes_remaining == 10


def test_sixty_one_minutes_is_breached_while_resolution_is_on_track():
    status = evaluate_at(61)

    assert status.first_response.urgency == UrgencyTier.BREACHED
    assert status.resolution.urgency == UrgencyTier.ON_TRACK
    assert status.most_urgent == UrgencyTier.BREACHED


def test_first_response_met_stops_its_clock():
    status = evaluate_at(
        120, status=TicketStatus.OPEN, first_response_at=NOW + timedelta(minutes=30)
    )
    clock = status.first_response

    assert clock.urgency == UrgencyTier.MET
    assert clock.elapsed_seconds == 30 * 60


def test_paused_time_is_subtracted_and_paused_clock_reports_paused():
    status = evaluate_at(
        90,
        sla_paused_seconds=600,
        sla_paused_at=NOW + timedelta(minutes=70),
    )
    clock = status.first_response

    # 90 minutes elapsed minus 10 stored and 20 ongoing paused minutes
    assert clock.elapsed_seconds == 60 * 60
    assert clock.urgency == UrgencyTier.PAUSED


def test_no_policy_reports_no_urgency():
    ticket = make_ticket()
    status = SlaEvaluator.evaluate(ticket, None, NOW, THRESHOLDS)

    assert status.has_policy is False
    assert status.most_urgent is None
    assert status.to_dict()["status"] == "no_policy"


def test_policy_targets_are_validated():
    with pytest.raises(ValueError):
        SlaPolicy(uuid4(), uuid4(), Priority.LOW, first_response_minutes=120, resolution_minutes=60)


def test_policy_target_lookup():
    policy = high_policy(uuid4())
    assert policy.target_minutes(BreachKind.FIRST_RESPONSE) == 60
    assert policy.target_minutes(BreachKind.RESOLUTION) == 480
