"""Sweep execution: retrieve a working set of items and record the outcome."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from backup_remote_files.domain.models import BackupItem, SweepKind, SweepResult
from backup_remote_files.observability.metrics import (
    BACKUP_FAILED,
    BACKUP_NB,
    BACKUP_SIZE,
    BACKUP_STATUS,
    BACKUP_TIME,
)

if TYPE_CHECKING:
    from backup_remote_files.protocols import Fetcher, MetricsSink

logger = logging.getLogger(__name__)


class SweepExecutor:
    """Attempts retrieval for each item of a working set, one at a time.

    Per-item errors never escape a sweep; they are translated into the
    item's ``last_succeeded`` flag and into metrics.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        metrics: MetricsSink,
        *,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetcher = fetcher
        self._metrics = metrics
        self._wall_clock = wall_clock

    async def run_sweep(
        self, items: Sequence[BackupItem], kind: SweepKind = SweepKind.FULL
    ) -> SweepResult:
        if kind is SweepKind.FULL:
            logger.info("sweep_started", extra={"kind": kind.value, "items": len(items)})
        else:
            logger.info("sweep_retrying_failed", extra={"kind": kind.value, "items": len(items)})

        started = time.perf_counter()
        failed = 0
        for item in items:
            if kind is SweepKind.RETRY:
                logger.info("sweep_retrying_item", extra={"id": item.id})
            if not await self._retrieve(item):
                failed += 1

        self._metrics.increment_counter(BACKUP_NB)
        all_succeeded = all(item.last_succeeded for item in items)
        logger.info(
            "sweep_finished",
            extra={
                "kind": kind.value,
                "items": len(items),
                "failed": failed,
                "all_succeeded": all_succeeded,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return SweepResult(
            kind=kind, all_succeeded=all_succeeded, attempted=len(items), failed=failed
        )

    async def _retrieve(self, item: BackupItem) -> bool:
        """Retrieve one item; returns whether it was reported as a success."""
        labels = {"id": item.id}
        item.last_succeeded = True

        result = await self._fetcher.fetch(
            item.url, item.username, item.password, item.destination, item_id=item.id
        )
        if result.error is not None:
            # Already logged by the fetcher. Only a failed remote phase makes
            # the item retry-eligible; local write failures are not retried.
            item.last_succeeded = result.attempted
            self._record_failure(labels)
            return False

        try:
            size = (await asyncio.to_thread(item.destination.stat)).st_size
        except OSError as exc:
            # The flag stays True: the remote fetch itself succeeded.
            logger.error(
                "backup_stat_failed",
                extra={"id": item.id, "output_file": str(item.destination), "error": str(exc)},
            )
            self._record_failure(labels)
            return False

        self._metrics.set_gauge(BACKUP_STATUS, labels, 1)
        self._metrics.set_gauge(BACKUP_SIZE, labels, size)
        self._metrics.set_gauge(BACKUP_TIME, labels, int(self._wall_clock()))
        logger.info(
            "backup_retrieved",
            extra={"id": item.id, "output_file": str(item.destination), "size_bytes": size},
        )
        return True

    def _record_failure(self, labels: dict[str, str]) -> None:
        self._metrics.set_gauge(BACKUP_STATUS, labels, 0)
        self._metrics.increment_counter(BACKUP_FAILED, labels)
