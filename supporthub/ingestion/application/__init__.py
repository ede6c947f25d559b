"""
Ingestion Application Layer
===========================

Ports, the message matcher, the per-mailbox ingestion service, the
periodic worker and reply sending.
"""

from supporthub.ingestion.application.interfaces import (
    IAttachmentStore,
    IInboundMessageRecordRepository,
    IMailProvider,
)
from supporthub.ingestion.application.matcher import MatchResult, MessageMatcher
from supporthub.ingestion.application.replies import ReplyService
from supporthub.ingestion.application.services import IngestionService
from supporthub.ingestion.application.worker import IngestionWorker

__all__ = [
    "IAttachmentStore",
    "IInboundMessageRecordRepository",
    "IMailProvider",
    "MatchResult",
    "MessageMatcher",
    "ReplyService",
    "IngestionService",
    "IngestionWorker",
]
