"""Observability module for the exporter metrics."""

from backup_remote_files.observability.metrics import (
    BACKUP_FAILED,
    BACKUP_NB,
    BACKUP_SIZE,
    BACKUP_STATUS,
    BACKUP_TIME,
    BUILD_INFO,
    BackupMetrics,
)

__all__ = [
    "BACKUP_FAILED",
    "BACKUP_NB",
    "BACKUP_SIZE",
    "BACKUP_STATUS",
    "BACKUP_TIME",
    "BUILD_INFO",
    "BackupMetrics",
]
