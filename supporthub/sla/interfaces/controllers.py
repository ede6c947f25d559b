"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA status and the monitor's run history.

Controllers are thin - they delegate to application services held on
``app.state`` by the lifespan.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from supporthub.shared.infrastructure.logging import get_logger
from supporthub.sla.application import SlaMonitorWorker, SlaService, TicketSlaResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

TICKET_SLA_RESPONSE_EXAMPLE = {
    "ticket_id": "123e4567-e89b-12d3-a456-426614174000",
    "evaluated_at": "2026-01-01T10:50:00Z",
    "status": "evaluated",
    "policy_id": "0b6a2a52-8f3e-4c55-9b7e-3f1f7d2f6a10",
    "urgency": "critical",
    "first_response": {
        "kind": "first_response",
        "target_minutes": 60,
        "elapsed_seconds": 3000.0,
        "remaining_seconds": 600.0,
        "percent_remaining": 16.67,
        "urgency": "critical",
        "met_at": None
    },
    "resolution": {
        "kind": "resolution",
        "target_minutes": 480,
        "elapsed_seconds": 3000.0,
        "remaining_seconds": 25800.0,
        "percent_remaining": 89.58,
        "urgency": "on_track",
        "met_at": None
    },
    "breaches": []
}

RUN_SUMMARY_EXAMPLE = {
    "run_id": "5f1c2b7a9d3e",
    "started_at": "2026-01-01T10:50:00+00:00",
    "finished_at": "2026-01-01T10:50:01+00:00",
    "tickets_evaluated": 42,
    "tickets_without_policy": 3,
    "breaches_recorded": 1,
    "warnings_recorded": 4,
    "notifications_failed": 0,
    "errors": 0,
    "stopped": False
}


# ========== Dependencies ==========

def get_sla_service(request: Request) -> SlaService:
    """Get SLA service instance."""
    return request.app.state.sla_service


def get_sla_monitor(request: Request) -> SlaMonitorWorker:
    """Get the SLA monitor worker."""
    return request.app.state.sla_monitor


# ========== Route Handlers ==========

@router.get(
    "/tickets/{ticket_id}",
    response_model=TicketSlaResponse,
    summary="Get ticket SLA status",
    description="""
    Evaluate both SLA clocks of a ticket right now.

    Returns:
        - First-response and resolution clocks with urgency tier
        - `no_policy` when the tenant has no policy for the ticket's priority
        - Breaches already recorded by the monitor
    """,
    responses={
        200: {
            "description": "Ticket SLA information",
            "content": {"application/json": {"example": TICKET_SLA_RESPONSE_EXAMPLE}}
        },
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket_sla(
    ticket_id: UUID,
    sla_service: SlaService = Depends(get_sla_service)
):
    sla_status, breaches = await sla_service.get_ticket_status(ticket_id)
    return TicketSlaResponse.from_domain(sla_status, breaches)


@router.get(
    "/runs/last",
    summary="Last SLA monitor run",
    responses={
        200: {
            "description": "Summary of the most recent run",
            "content": {"application/json": {"example": RUN_SUMMARY_EXAMPLE}}
        },
        404: {"description": "The monitor has not run yet"}
    }
)
async def get_last_run(monitor: SlaMonitorWorker = Depends(get_sla_monitor)) -> dict:
    if monitor.last_run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="SLA monitor has not run yet"
        )
    return monitor.last_run.to_dict()


@router.post(
    "/runs",
    summary="Trigger an SLA monitor run",
    description="Runs one monitor pass immediately and returns its summary.",
    responses={
        200: {
            "description": "Summary of the triggered run",
            "content": {"application/json": {"example": RUN_SUMMARY_EXAMPLE}}
        }
    }
)
async def trigger_run(
    request: Request,
    monitor: SlaMonitorWorker = Depends(get_sla_monitor)
) -> dict:
    summary = await monitor.run(stop_event=getattr(request.app.state, "stop_event", None))
    logger.info("SLA monitor run triggered manually", extra={"run_id": summary.run_id})
    return summary.to_dict()


sla_router = router
