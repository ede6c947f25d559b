"""
Pipeline Scheduler
==================

Wrapper around APScheduler that runs the ingestion and SLA monitor
workers on fixed intervals, one instance of each job at a time.
"""

from typing import Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from supporthub.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class PipelineScheduler:
    """
    Manages the lifecycle of the scheduler and its periodic jobs.

    Jobs are registered with ``add_job`` before ``start``.
    """

    def __init__(self):
        self._jobs: Dict[str, dict] = {}
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def add_job(
        self,
        job_id: str,
        job_func: Callable[[], Awaitable[object]],
        interval_seconds: int,
        name: Optional[str] = None,
    ) -> None:
        """Register a periodic job; overlapping runs are never started."""
        self._jobs[job_id] = {
            "func": job_func,
            "seconds": interval_seconds,
            "name": name or job_id,
        }

    async def start(self) -> None:
        """Start the scheduler with every registered job."""
        if self._running:
            logger.warning("Pipeline scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        for job_id, job in self._jobs.items():
            self._scheduler.add_job(
                job["func"],
                "interval",
                seconds=job["seconds"],
                id=job_id,
                name=job["name"],
                misfire_grace_time=60,
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Pipeline scheduler started",
            extra={
                "jobs": {job_id: job["seconds"] for job_id, job in self._jobs.items()}
            }
        )

    async def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Pipeline scheduler stopped")

    @property
    def job_ids(self) -> List[str]:
        return list(self._jobs)

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
