"""
Ingestion Domain Layer
======================

Inbound mail value objects, processing results and the threading contract.
"""

from supporthub.ingestion.domain.entities import (
    InboundMessage,
    InboundMessageRecord,
    IngestionRunSummary,
    MailAttachment,
    ProcessingBatchResult,
    ProcessingItem,
)
from supporthub.ingestion.domain.reply_threading import (
    compose_reply_subject,
    header_ticket_number,
    subject_ticket_number,
    subject_token,
    threading_headers,
)

__all__ = [
    "InboundMessage",
    "InboundMessageRecord",
    "IngestionRunSummary",
    "MailAttachment",
    "ProcessingBatchResult",
    "ProcessingItem",
    "compose_reply_subject",
    "header_ticket_number",
    "subject_ticket_number",
    "subject_token",
    "threading_headers",
]
