from __future__ import annotations

from .settings import (
    DEFAULT_INTERVAL,
    DEFAULT_METRICS_PREFIX,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_TIMEOUT,
    BackupConfig,
    ExporterConfig,
    RuntimeSettings,
    load_config,
)

__all__ = [
    "DEFAULT_INTERVAL",
    "DEFAULT_METRICS_PREFIX",
    "DEFAULT_RETRY_INTERVAL",
    "DEFAULT_TIMEOUT",
    "BackupConfig",
    "ExporterConfig",
    "RuntimeSettings",
    "load_config",
]
