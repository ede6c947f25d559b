"""
Ingestion Interfaces Layer
==========================

FastAPI route handlers for the mailbox poller and agent replies.
"""

from supporthub.ingestion.interfaces.controllers import ingestion_router

__all__ = ["ingestion_router"]
