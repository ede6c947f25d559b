"""
Ingestion Infrastructure Layer
==============================

Processed-message log persistence, the Microsoft Graph mail provider and
the local attachment store.
"""

from supporthub.ingestion.infrastructure.external import GraphMailProvider, LocalAttachmentStore
from supporthub.ingestion.infrastructure.models import InboundMessageRecordModel
from supporthub.ingestion.infrastructure.repositories import (
    SQLAlchemyInboundMessageRecordRepository,
)

__all__ = [
    "GraphMailProvider",
    "LocalAttachmentStore",
    "InboundMessageRecordModel",
    "SQLAlchemyInboundMessageRecordRepository",
]
