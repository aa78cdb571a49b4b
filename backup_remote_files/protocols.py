"""Protocol definitions for the collaborators of the sweep executor.

These protocols keep the scheduling core independent of the HTTP client and
of the metrics library, which makes both easy to replace in tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from backup_remote_files.adapters.http_fetcher import FetchResult


class Fetcher(Protocol):
    """Performs one retrieval of one remote file."""

    async def fetch(
        self,
        url: str,
        username: str,
        password: str,
        destination: Path,
        *,
        item_id: str = "",
    ) -> FetchResult:
        """Download ``url`` into ``destination`` using basic auth.

        Returns:
            ``attempted`` is true once the response body started transferring;
            ``error`` is set when any stage failed.

        """
        ...


class MetricsSink(Protocol):
    """Minimal set/increment contract the sweep executor depends on."""

    def set_gauge(self, name: str, labels: Mapping[str, str], value: float) -> None:
        """Store ``value`` for the labeled gauge (last write wins)."""
        ...

    def increment_counter(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        """Add one to the labeled counter."""
        ...
