"""
Ingestion Controllers (API Routes)
==================================

Run history and manual triggers for the mailbox poller, plus the agent
reply endpoint.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from supporthub.ingestion.application import IngestionWorker, ReplyService
from supporthub.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/ingestion", tags=["Ingestion"])


# ========== DTOs ==========

class ReplyRequest(BaseModel):
    """Request model for an agent reply."""
    body: str = Field(..., min_length=1, description="Plain-text reply body")
    agent_name: Optional[str] = Field(None, max_length=200)


class ReplyResponse(BaseModel):
    """Response model for a sent reply."""
    message_id: str
    ticket_id: str
    created_at: datetime


# ========== Dependencies ==========

def get_ingestion_worker(request: Request) -> IngestionWorker:
    return request.app.state.ingestion_worker


def get_reply_service(request: Request) -> ReplyService:
    return request.app.state.reply_service


# ========== Route Handlers ==========

@router.get("/runs/last", summary="Last ingestion run")
async def get_last_run(worker: IngestionWorker = Depends(get_ingestion_worker)) -> dict:
    if worker.last_run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ingestion has not run yet"
        )
    return worker.last_run.to_dict()


@router.post(
    "/runs",
    summary="Trigger an ingestion run",
    description="Polls every due mailbox of every active tenant and returns the run summary.",
)
async def trigger_run(
    request: Request,
    worker: IngestionWorker = Depends(get_ingestion_worker)
) -> dict:
    summary = await worker.run(stop_event=getattr(request.app.state, "stop_event", None))
    logger.info("Ingestion run triggered manually", extra={"run_id": summary.run_id})
    return summary.to_dict()


@router.post(
    "/tickets/{ticket_id}/replies",
    response_model=ReplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send an agent reply",
    description="""
    Sends a reply from the tenant's mailbox with the threading header and
    subject token, records it on the ticket and starts the first-response
    clock if it is the first agent message.
    """,
    responses={
        404: {"description": "Ticket not found"},
        422: {"description": "Empty body or tenant has no active mailbox"},
        502: {"description": "Mail provider rejected the message"},
    }
)
async def send_reply(
    ticket_id: UUID,
    payload: ReplyRequest,
    replies: ReplyService = Depends(get_reply_service)
) -> ReplyResponse:
    message = await replies.send_reply(ticket_id, payload.body, payload.agent_name)
    return ReplyResponse(
        message_id=str(message.id),
        ticket_id=str(message.ticket_id),
        created_at=message.created_at,
    )


ingestion_router = router
