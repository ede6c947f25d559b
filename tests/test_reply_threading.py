from supporthub.ingestion.domain import (
    compose_reply_subject, header_ticket_number, subject_ticket_number, subject_token,
)
from tests.conftest import make_message


def test_reply_subject_carries_token_once():
    assert compose_reply_subject("TKT-20260101-0001", "VPN down") == \
        "Re: [SH-TKT-20260101-0001] VPN down"

    again = compose_reply_subject(
        "TKT-20260101-0001", "RE: Fwd: [SH-TKT-20260101-0001] VPN down"
    )

    assert again == "Re: [SH-TKT-20260101-0001] VPN down"


def test_reply_subject_for_empty_subject():
    assert compose_reply_subject("TKT-20260101-0001", "") == "Re: [SH-TKT-20260101-0001]"


def test_subject_token_is_found_anywhere_in_subject():
    assert subject_ticket_number("Re: VPN [sh-tkt-20260101-0042] still down") == "TKT-20260101-0042"
    assert subject_ticket_number("Re: [SH-TKT-2026-1] broken token") is None
    assert subject_ticket_number("") is None
    assert subject_token("TKT-20260101-0042") == "[SH-TKT-20260101-0042]"


def test_header_lookup_is_case_insensitive_and_validated():
    good = make_message("m-1", headers={"x-supporthub-ticketid": " tkt-20260101-0007 "})
    bad = make_message("m-2", headers={"X-SupportHub-TicketId": "not-a-ticket"})

    assert header_ticket_number(good) == "TKT-20260101-0007"
    assert header_ticket_number(bad) is None
    assert header_ticket_number(make_message("m-3")) is None
