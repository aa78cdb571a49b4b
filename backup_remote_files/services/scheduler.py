"""Background scheduling of full and retry sweeps."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from backup_remote_files.core.time_utils import utc_now
from backup_remote_files.domain.models import BackupItem, SweepKind, SweepResult, select_working_set

if TYPE_CHECKING:
    from backup_remote_files.services.retrieval import SweepExecutor

logger = logging.getLogger(__name__)


class BackupScheduler:
    """Drives full sweeps and adaptive retry sweeps over the tracked items.

    Two APScheduler interval jobs only enqueue sweep requests; a single worker
    task runs the sweeps one after another, so two sweeps never overlap. A
    tick whose kind is already waiting in the queue is dropped.

    The retry job is paused (disarmed) whenever a sweep reports that every
    considered item succeeded, and re-armed with a fresh deadline of
    ``now + retry_interval`` whenever a full sweep leaves failures behind. A
    failing retry sweep keeps the existing cadence.

    When both ticks are due at the same instant the order of the two sweeps
    is whatever order APScheduler submits them in; that is accepted.
    """

    FULL_JOB_ID = "full_sweep"
    RETRY_JOB_ID = "retry_sweep"

    def __init__(
        self,
        items: list[BackupItem],
        executor: SweepExecutor,
        *,
        interval: timedelta,
        retry_interval: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval <= timedelta(0) or retry_interval <= timedelta(0):
            msg = "Sweep intervals must be positive"
            raise ValueError(msg)
        self.items = items
        self.interval = interval
        self.retry_interval = retry_interval
        self._executor = executor
        self._clock = clock
        self._scheduler: AsyncIOScheduler | None = None
        self._queue: asyncio.Queue[SweepKind] = asyncio.Queue()
        self._pending: set[SweepKind] = set()
        self._sweep_lock = asyncio.Lock()
        self._worker: asyncio.Task[None] | None = None
        self._started = False
        self._stopping = False
        self.retry_armed = False
        self.next_retry_at: datetime | None = None

    async def start(self, *, paused: bool = False) -> SweepResult | None:
        """Run the initial full sweep, then start both timers and the worker.

        Args:
            paused: Start APScheduler without processing jobs; ticks can then
                only be requested through ``request_sweep``.

        Returns:
            The result of the initial full sweep.
        """
        if self._started:
            logger.warning("scheduler_already_started")
            return None

        self._stopping = False
        self._queue = asyncio.Queue()
        self._pending.clear()

        started_at = self._clock()
        result = await self.run_sweep(SweepKind.FULL)

        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._scheduler.add_job(
            self.request_sweep,
            trigger=IntervalTrigger(seconds=self.interval.total_seconds(), timezone=UTC),
            args=[SweepKind.FULL],
            id=self.FULL_JOB_ID,
            name="Full backup sweep",
            next_run_time=started_at + self.interval,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=None,
        )
        # next_run_time=None adds the job paused: the retry timer starts disarmed.
        self._scheduler.add_job(
            self.request_sweep,
            trigger=IntervalTrigger(seconds=self.retry_interval.total_seconds(), timezone=UTC),
            args=[SweepKind.RETRY],
            id=self.RETRY_JOB_ID,
            name="Retry failed backups",
            next_run_time=self.next_retry_at if self.retry_armed else None,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=None,
        )

        self._worker = asyncio.create_task(self._run_worker(), name="backup-sweep-worker")
        self._scheduler.start(paused=paused)
        self._started = True
        logger.info(
            "scheduler_started",
            extra={
                "interval_seconds": self.interval.total_seconds(),
                "retry_interval_seconds": self.retry_interval.total_seconds(),
                "retry_armed": self.retry_armed,
                "items": len(self.items),
            },
        )
        return result

    async def stop(self) -> None:
        """Stop scheduling new sweeps; an in-flight sweep completes first."""
        if not self._started:
            return
        self._stopping = True
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        if self._worker is not None:
            async with self._sweep_lock:
                self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        self._started = False
        logger.info("scheduler_stopped")

    async def request_sweep(self, kind: SweepKind) -> None:
        """Queue a sweep for the worker; target of both timer jobs."""
        if self._stopping:
            return
        if kind in self._pending:
            logger.info("sweep_tick_dropped", extra={"kind": kind.value})
            return
        self._pending.add(kind)
        self._queue.put_nowait(kind)

    async def wait_idle(self) -> None:
        """Wait until every queued sweep request has been processed."""
        await self._queue.join()

    async def run_sweep(self, kind: SweepKind) -> SweepResult:
        """Run one sweep of ``kind`` and update the retry timer from its outcome."""
        async with self._sweep_lock:
            working_set = select_working_set(self.items, kind)
            result = await self._executor.run_sweep(working_set, kind)
            self._apply_outcome(result)
            return result

    async def _run_worker(self) -> None:
        while True:
            kind = await self._queue.get()
            try:
                self._pending.discard(kind)
                if kind is SweepKind.RETRY and not self.retry_armed:
                    logger.info("sweep_tick_skipped", extra={"kind": kind.value})
                    continue
                await self.run_sweep(kind)
            except Exception:
                logger.exception("sweep_failed", extra={"kind": kind.value})
            finally:
                self._queue.task_done()

    def _apply_outcome(self, result: SweepResult) -> None:
        if result.all_succeeded:
            self._disarm()
        elif result.kind is SweepKind.FULL or not self.retry_armed:
            self._arm()
        else:
            self._keep_cadence()

    def _arm(self) -> None:
        self.retry_armed = True
        self.next_retry_at = self._clock() + self.retry_interval
        if self._scheduler is not None:
            self._scheduler.modify_job(self.RETRY_JOB_ID, next_run_time=self.next_retry_at)
        logger.info(
            "retry_timer_armed",
            extra={"next_retry_at": self.next_retry_at.isoformat()},
        )

    def _disarm(self) -> None:
        was_armed = self.retry_armed
        self.retry_armed = False
        self.next_retry_at = None
        if self._scheduler is not None:
            self._scheduler.pause_job(self.RETRY_JOB_ID)
        if was_armed:
            logger.info("retry_timer_disarmed")

    def _keep_cadence(self) -> None:
        if self._scheduler is not None:
            self.next_retry_at = self.get_next_run_time(self.RETRY_JOB_ID)
            return
        now = self._clock()
        deadline = self.next_retry_at or now
        while deadline <= now:
            deadline += self.retry_interval
        self.next_retry_at = deadline

    def get_next_run_time(self, job_id: str) -> datetime | None:
        """Get next scheduled run time for a job.

        Args:
            job_id: Job identifier (``full_sweep`` or ``retry_sweep``)

        Returns:
            Next run time or None if the job is paused or the scheduler not started
        """
        if not self._scheduler:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None
