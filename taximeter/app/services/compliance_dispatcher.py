"""
Outbound queue for regulator reports.

Trip log requests hand START/END events to this dispatcher and return
immediately; a small pool of worker tasks performs the regulator calls.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from taximeter.app.models.trip_enums import ComplianceRequestType
from taximeter.app.services.compliance_reporter import ComplianceReporter

logger = logging.getLogger("taximeter.compliance")


@dataclass
class ComplianceJob:
    trip_log_id: int
    kind: ComplianceRequestType
    payload: Dict[str, Any]


class ComplianceDispatcher:
    """
    Bounded worker pool in front of the ComplianceReporter.

    Each job runs in its own database session. When the queue is full the job
    is dropped with a warning; the trip log keeps its unreported flag so the
    reconciliation sweep can resend it.
    """

    def __init__(self, session_factory, reporter: ComplianceReporter, workers: int = 4, maxsize: int = 1000):
        self.session_factory = session_factory
        self.reporter = reporter
        self.workers = workers
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"compliance-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Compliance dispatcher started", extra={"workers": self.workers})

    async def stop(self, drain: bool = True) -> None:
        """Stop the workers, by default after finishing queued jobs."""
        if drain and self._tasks:
            await self.queue.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Compliance dispatcher stopped")

    def submit(self, trip_log_id: int, kind: ComplianceRequestType, payload: Dict[str, Any]) -> bool:
        """Queue a report without waiting for it. Returns False if the queue is full."""
        try:
            self.queue.put_nowait(ComplianceJob(trip_log_id, kind, payload))
        except asyncio.QueueFull:
            logger.warning(
                "Compliance queue full, report left for reconciliation",
                extra={"trip_log_id": trip_log_id, "kind": kind.value},
            )
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self.queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            job: Optional[ComplianceJob] = await self.queue.get()
            try:
                async with self.session_factory() as db:
                    await self.reporter.report(db, job.trip_log_id, job.kind, job.payload)
            except asyncio.CancelledError:
                raise
            except Exception:
                # Store trouble while recording the outcome; the trip log stays unflagged
                logger.exception(
                    "Compliance job failed",
                    extra={"trip_log_id": job.trip_log_id, "kind": job.kind.value, "worker": index},
                )
            finally:
                self.queue.task_done()
