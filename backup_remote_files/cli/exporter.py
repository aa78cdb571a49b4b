"""Command-line entry point: periodic backups plus the metrics endpoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import platform
import sys
from collections.abc import Sequence

import uvicorn
from pydantic import ValidationError

from backup_remote_files import __version__
from backup_remote_files.adapters.http_fetcher import HttpFetcher
from backup_remote_files.api.main import create_app
from backup_remote_files.config import ExporterConfig, RuntimeSettings, load_config
from backup_remote_files.core.logging_utils import setup_json_logging
from backup_remote_files.domain.exceptions import ConfigDefectError, ConfigError
from backup_remote_files.observability.metrics import BackupMetrics
from backup_remote_files.runtime.shutdown import ShutdownCoordinator, install_signal_handlers
from backup_remote_files.services.retrieval import SweepExecutor
from backup_remote_files.services.scheduler import BackupScheduler

logger = logging.getLogger(__name__)

__all__ = ["build_parser", "main", "run", "serve", "version_banner"]

DEFAULT_PORT = 9289


def version_banner(version: str) -> str:
    rows = (
        ("Version", version),
        ("Python Version", platform.python_version()),
        ("Implementation", platform.python_implementation()),
        ("Platform", platform.platform()),
        ("Machine", platform.machine()),
    )
    return "".join(f"{label:<15}: {value}\n" for label, value in rows)


def build_parser(version: str = __version__) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backup-remote-files",
        description="Periodically retrieve remote files and export the outcome as metrics.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", required=True, help="Configuration file")
    parser.add_argument(
        "-p", "--port", type=int, default=DEFAULT_PORT, help="Exporter port (default: %(default)s)"
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=version_banner(version),
        help="Show version info",
    )
    return parser


async def serve(cfg: ExporterConfig, *, port: int, version: str, host: str = "0.0.0.0") -> None:
    """Run the initial sweep, the sweep scheduler and the metrics server until shutdown."""
    items = cfg.build_items()
    metrics = BackupMetrics(cfg.metrics_prefix)
    metrics.initialize((item.id for item in items), version)

    fetcher = HttpFetcher(timeout=cfg.fetch_timeout_seconds)
    executor = SweepExecutor(fetcher, metrics)
    scheduler = BackupScheduler(
        items,
        executor,
        interval=cfg.interval,
        retry_interval=cfg.retry_interval,
    )
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(metrics, version=version),
            host=host,
            port=port,
            log_config=None,
            access_log=False,
            lifespan="off",
        )
    )

    coordinator = ShutdownCoordinator(scheduler, fetcher, server)
    install_signal_handlers(asyncio.get_running_loop(), coordinator)

    try:
        await scheduler.start()
        if coordinator.requested:
            return
        logger.info("exporter_http_server_starting", extra={"host": host, "port": port})
        await server.serve()
    finally:
        await coordinator.shutdown()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = RuntimeSettings()
    except ValidationError as exc:
        print(f"Invalid runtime settings: {exc}", file=sys.stderr)
        return 1
    setup_json_logging(settings.log_level, use_loguru=settings.log_json, log_file=settings.log_file)

    try:
        cfg = load_config(args.config)
    except ConfigDefectError as exc:
        logger.critical("config_default_invalid", extra={"error": str(exc), **exc.details})
        return 1
    except ConfigError as exc:
        logger.critical("config_invalid", extra={"error": exc.message, **exc.details})
        return 1

    try:
        asyncio.run(serve(cfg, port=args.port, version=__version__))
    except KeyboardInterrupt:  # pragma: no cover
        logger.info("shutdown_interrupted")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
