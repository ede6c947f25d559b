"""
Reply threading contract.

Outbound replies carry the ticket number both in the
``X-SupportHub-TicketId`` header and as a ``[SH-<number>]`` subject token;
inbound mail is matched back to a ticket through either.
"""

import re
from typing import Optional

from supporthub.config import SUBJECT_TOKEN_PREFIX, THREADING_HEADER
from supporthub.ingestion.domain.entities import InboundMessage
from supporthub.tickets.domain.entities import TICKET_NUMBER_PATTERN

SUBJECT_TOKEN_RE = re.compile(
    r"\[" + re.escape(SUBJECT_TOKEN_PREFIX) + r"(" + TICKET_NUMBER_PATTERN.pattern + r")\]",
    re.IGNORECASE,
)
_REPLY_PREFIX_RE = re.compile(r"^\s*((re|fw|fwd)\s*:\s*)+", re.IGNORECASE)


def subject_token(ticket_number: str) -> str:
    return f"[{SUBJECT_TOKEN_PREFIX}{ticket_number}]"


def header_ticket_number(message: InboundMessage) -> Optional[str]:
    """Ticket number from the threading header, if well formed."""
    value = (message.header(THREADING_HEADER) or "").strip()
    if TICKET_NUMBER_PATTERN.fullmatch(value.upper()):
        return value.upper()
    return None


def subject_ticket_number(subject: str) -> Optional[str]:
    """Ticket number from the first subject token, if any."""
    match = SUBJECT_TOKEN_RE.search(subject or "")
    return match.group(1).upper() if match else None


def compose_reply_subject(ticket_number: str, subject: str) -> str:
    """``Re: [SH-<number>] <subject>`` without stacking prefixes or tokens."""
    cleaned = SUBJECT_TOKEN_RE.sub("", _REPLY_PREFIX_RE.sub("", subject or ""))
    cleaned = " ".join(cleaned.split())
    return f"Re: {subject_token(ticket_number)} {cleaned}".rstrip()


def threading_headers(ticket_number: str) -> dict:
    return {THREADING_HEADER: ticket_number}
