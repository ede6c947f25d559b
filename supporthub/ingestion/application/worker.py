"""
Ingestion worker.

One run polls every due mailbox of every active tenant. Tenants are
processed concurrently in a bounded pool and isolated from each other;
the run itself never raises.
"""

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import uuid4

from supporthub.config import settings
from supporthub.infrastructure.database import utcnow
from supporthub.ingestion.application.services import IngestionService
from supporthub.ingestion.domain.entities import IngestionRunSummary, ProcessingBatchResult
from supporthub.shared.infrastructure.logging import get_logger, get_run_logger
from supporthub.tenancy.domain.entities import Tenant

if TYPE_CHECKING:
    from supporthub.infrastructure.unit_of_work import UnitOfWorkFactory

logger = get_logger(__name__)


class IngestionWorker:
    """Periodic mailbox poller; ``last_run`` holds the latest summary."""

    def __init__(
        self,
        uow_factory: "UnitOfWorkFactory",
        service: IngestionService,
        max_concurrency: Optional[int] = None,
    ):
        self._uow = uow_factory
        self._service = service
        self._max_concurrency = max_concurrency or settings.ingestion_max_concurrency
        self._lock = asyncio.Lock()
        self.last_run: Optional[IngestionRunSummary] = None

    async def wait_idle(self) -> None:
        """Wait until a run in progress, if any, has finished."""
        async with self._lock:
            pass

    async def poll_tenant(
        self,
        tenant: Tenant,
        stop_event: Optional[asyncio.Event] = None,
        now: Optional[datetime] = None,
    ) -> List[ProcessingBatchResult]:
        """Poll the tenant's active mailboxes that are due; one batch each."""
        now = now or utcnow()
        async with self._uow() as uow:
            mailboxes = await uow.tenants.list_active_mailboxes(tenant.id)

        batches = []
        for mailbox in mailboxes:
            if stop_event is not None and stop_event.is_set():
                break
            if not mailbox.is_due(now):
                continue
            batches.append(await self._service.poll_mailbox(mailbox, stop_event))
        return batches

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> IngestionRunSummary:
        """Execute one ingestion run across all active tenants."""
        async with self._lock:
            summary = IngestionRunSummary(run_id=uuid4().hex[:12], started_at=utcnow())
            run_logger = get_run_logger(__name__, summary.run_id)
            stop_event = stop_event or asyncio.Event()

            try:
                async with self._uow() as uow:
                    tenants = await uow.tenants.list_active_tenants()
            except Exception:
                run_logger.exception("Failed to list tenants")
                summary.errors += 1
                tenants = []

            summary.tenants = len(tenants)
            semaphore = asyncio.Semaphore(self._max_concurrency)

            async def guarded(tenant: Tenant) -> None:
                async with semaphore:
                    if stop_event.is_set():
                        return
                    try:
                        for batch in await self.poll_tenant(tenant, stop_event):
                            summary.add_batch(batch)
                    except Exception:
                        summary.errors += 1
                        run_logger.exception(
                            "Tenant ingestion failed",
                            extra={"tenant_id": str(tenant.id), "tenant_code": tenant.code}
                        )

            await asyncio.gather(*(guarded(t) for t in tenants))

            summary.stopped = stop_event.is_set()
            summary.finished_at = utcnow()
            self.last_run = summary

            run_logger.info("Ingestion run finished", extra={"summary": summary.to_dict()})
            return summary
