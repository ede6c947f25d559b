"""
SupportHub Pipeline - Main Application
======================================

Multi-tenant ticket processing pipeline.

Modules:
- Ingestion: Poll tenant mailboxes, thread replies, create tickets
- Routing: Apply tenant rules to new tickets
- SLA Monitoring: Track first-response and resolution clocks

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services, workers and DTOs
- Domain: Entities, value objects and pure evaluators
- Infrastructure: Database, Microsoft Graph, Slack, filesystem
"""

import asyncio
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration and Core
from supporthub.config import settings
from supporthub.core import ApplicationException

# Infrastructure
from supporthub.infrastructure.database import (
    close_database, create_tables, get_session_context, get_session_maker, init_database,
)
from supporthub.infrastructure.unit_of_work import SQLAlchemyUnitOfWorkFactory

# Ingestion Module
from supporthub.ingestion.application import IngestionService, IngestionWorker, ReplyService
from supporthub.ingestion.infrastructure import GraphMailProvider, LocalAttachmentStore
from supporthub.ingestion.interfaces import ingestion_router

# SLA Module
from supporthub.sla.application import SlaMonitorWorker, SlaService
from supporthub.sla.domain import UrgencyThresholds
from supporthub.sla.infrastructure import SlackNotificationSink
from supporthub.sla.interfaces import sla_router

# Shared
from supporthub.shared.api import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from supporthub.shared.infrastructure import PipelineConfigManager, PipelineScheduler
from supporthub.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load pipeline YAML configuration
    4. Wire providers, services and workers onto app.state
    5. Start the pipeline scheduler

    SHUTDOWN:
    1. Signal running workers to stop between items
    2. Stop the scheduler and wait for in-flight worker runs
    3. Close HTTP clients and database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SupportHub pipeline", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()

    # Create tables (for development - use Alembic in production)
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    config_manager = PipelineConfigManager()
    pipeline_config = config_manager.load(settings.pipeline_config_path)

    uow_factory = SQLAlchemyUnitOfWorkFactory(get_session_maker())
    mail_provider = GraphMailProvider()
    notification_sink = SlackNotificationSink()
    thresholds = UrgencyThresholds.from_settings()
    stop_event = asyncio.Event()

    ingestion_service = IngestionService(
        uow_factory,
        mail_provider,
        LocalAttachmentStore(),
        ignored_senders=pipeline_config.ignored_senders,
    )
    ingestion_worker = IngestionWorker(uow_factory, ingestion_service)
    sla_monitor = SlaMonitorWorker(uow_factory, notification_sink, thresholds)

    # Store services in app state for dependency injection
    app.state.stop_event = stop_event
    app.state.pipeline_config = config_manager
    app.state.ingestion_worker = ingestion_worker
    app.state.reply_service = ReplyService(uow_factory, mail_provider)
    app.state.sla_service = SlaService(uow_factory, thresholds)
    app.state.sla_monitor = sla_monitor

    scheduler = PipelineScheduler()
    if settings.ingestion_enabled:
        if mail_provider.is_configured:
            scheduler.add_job(
                "ingestion",
                partial(ingestion_worker.run, stop_event),
                settings.ingestion_interval_seconds,
                name="Mailbox Ingestion",
            )
        else:
            logger.warning("Graph credentials not configured - ingestion job not scheduled")
    if settings.sla_monitor_enabled:
        scheduler.add_job(
            "sla_monitor",
            partial(sla_monitor.run, stop_event),
            settings.sla_monitor_interval_seconds,
            name="SLA Monitor",
        )
    await scheduler.start()
    app.state.scheduler = scheduler

    logger.info("SupportHub pipeline started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down SupportHub pipeline")

    stop_event.set()
    await scheduler.stop()
    # Running jobs end after their current item; let them finish before
    # their clients and connections go away
    await ingestion_worker.wait_idle()
    await sla_monitor.wait_idle()
    await mail_provider.close()
    await notification_sink.close()
    await close_database()

    logger.info("SupportHub pipeline shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="SupportHub Pipeline API",
    description="""
    ## SupportHub Ticket Processing Pipeline

    Operational surface for the background pipeline.

    ### Ingestion
    - `GET /ingestion/runs/last` - Summary of the latest mailbox poll
    - `POST /ingestion/runs` - Poll every due mailbox now
    - `POST /ingestion/tickets/{id}/replies` - Send an agent reply

    ### SLA Monitoring
    - `GET /sla/tickets/{id}` - Evaluate a ticket's SLA clocks
    - `GET /sla/runs/last` - Summary of the latest monitor run
    - `POST /sla/runs` - Run the monitor now
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(ingestion_router)
app.include_router(sla_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "scheduler": "running",
                        "ingestion_last_run_errors": 0,
                        "sla_last_run_errors": 0
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database connectivity, scheduler state and the error counts
    of the latest worker runs.
    """
    checks = {}

    try:
        async with get_session_context() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception as e:
        checks["database"] = f"error: {e}"

    scheduler = getattr(request.app.state, "scheduler", None)
    checks["scheduler"] = "running" if scheduler and scheduler.is_running else "stopped"

    ingestion_run = request.app.state.ingestion_worker.last_run
    sla_run = request.app.state.sla_monitor.last_run
    checks["ingestion_last_run_errors"] = ingestion_run.errors if ingestion_run else None
    checks["sla_last_run_errors"] = sla_run.errors if sla_run else None

    return {
        "status": "healthy" if checks["database"] == "connected" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


# === Development Entry Point ===

def run() -> None:
    import uvicorn

    uvicorn.run(
        "supporthub.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )


if __name__ == "__main__":
    run()
