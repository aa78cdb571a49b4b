"""Graceful shutdown of the exporter process."""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from backup_remote_files.core.logging_utils import get_logger

if TYPE_CHECKING:
    from asyncio import AbstractEventLoop
    from collections.abc import Iterable

    import uvicorn

    from backup_remote_files.adapters.http_fetcher import HttpFetcher
    from backup_remote_files.services.scheduler import BackupScheduler

logger = get_logger(__name__)


class ShutdownCoordinator:
    """Owns the exporter shutdown sequence.

    ``request`` is what signal handlers call: it only flags the shutdown and
    tells the metrics server to exit. ``shutdown`` then runs the sequence
    exactly once, whatever triggered it:

    1. stop the metrics server
    2. stop the scheduler, letting an in-flight sweep finish
    3. close the HTTP client used for retrievals
    """

    def __init__(
        self,
        scheduler: BackupScheduler,
        fetcher: HttpFetcher,
        server: uvicorn.Server | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._fetcher = fetcher
        self._server = server
        self._lock = asyncio.Lock()
        self._requested = False
        self._completed = False

    @property
    def requested(self) -> bool:
        return self._requested

    @property
    def completed(self) -> bool:
        return self._completed

    def request(self) -> None:
        """Ask the exporter to stop; safe to call from a signal handler, repeatedly."""
        if self._requested:
            return
        self._requested = True
        logger.info("shutdown_requested")
        self._stop_server()

    async def shutdown(self) -> None:
        async with self._lock:
            if self._completed:
                return
            self._requested = True
            self._stop_server()
            try:
                await self._scheduler.stop()
            except Exception:
                logger.exception("shutdown_step_failed", extra={"step": "scheduler"})
            try:
                await self._fetcher.aclose()
            except Exception:
                logger.exception("shutdown_step_failed", extra={"step": "fetcher"})
            self._completed = True
            logger.info("shutdown")

    def _stop_server(self) -> None:
        if self._server is not None:
            self._server.should_exit = True


def install_signal_handlers(
    loop: AbstractEventLoop,
    coordinator: ShutdownCoordinator,
    *,
    signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
) -> None:
    """Route SIGINT/SIGTERM to ``coordinator.request``."""
    for sig in signals:
        try:
            loop.add_signal_handler(sig, coordinator.request)
        except NotImplementedError:  # pragma: no cover
            logger.warning("signal_handlers_unsupported", extra={"signal": str(sig)})
