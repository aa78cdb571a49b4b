"""Exceptions raised while loading configuration and retrieving backups.

Configuration errors propagate to the process entry point, which decides to
terminate. Fetch errors never leave a sweep: they are carried in a
``FetchResult`` and turned into metrics.
"""

from __future__ import annotations

from typing import Any


class BackupError(Exception):
    """Base exception for all exporter errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (context: {self.details})"
        return self.message


class ConfigError(BackupError):
    """Raised when the configuration file is unreadable, unparsable or invalid."""


class ConfigDefectError(ConfigError):
    """Raised when a built-in default value is itself invalid.

    This is a programming defect, not an operator mistake.
    """


class FetchError(BackupError):
    """Base class for failures of a single retrieval."""


class RemoteFetchError(FetchError):
    """Raised when the remote request fails (network, auth or HTTP status)."""


class LocalWriteError(FetchError):
    """Raised when the destination file cannot be opened or written."""
