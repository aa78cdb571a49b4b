"""Pytest configuration and shared fixtures.

This module provides a virtual clock, item factories, a recording metrics
sink and a scripted fetcher for the sweep and scheduler tests.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from backup_remote_files.adapters.http_fetcher import FetchResult
from backup_remote_files.domain.exceptions import LocalWriteError, RemoteFetchError
from backup_remote_files.domain.models import BackupItem


class VirtualClock:
    """Deterministic clock; time only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.start = start or datetime(2030, 1, 1, tzinfo=UTC)
        self._now = self.start

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


class RecordingMetrics:
    """Metrics sink keeping the latest gauge values and counter totals."""

    def __init__(self) -> None:
        self.gauges: dict[tuple[str, tuple[tuple[str, str], ...]], float] = {}
        self.counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}

    @staticmethod
    def _key(name: str, labels: Mapping[str, str] | None) -> tuple:
        return name, tuple(sorted((labels or {}).items()))

    def set_gauge(self, name: str, labels: Mapping[str, str], value: float) -> None:
        self.gauges[self._key(name, labels)] = value

    def increment_counter(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        key = self._key(name, labels)
        self.counters[key] = self.counters.get(key, 0) + 1

    def gauge(self, name: str, item_id: str) -> float | None:
        return self.gauges.get(self._key(name, {"id": item_id}))

    def counter(self, name: str, item_id: str | None = None) -> int:
        labels = {"id": item_id} if item_id is not None else None
        return self.counters.get(self._key(name, labels), 0)


@dataclass
class ScriptedFetcher:
    """Fetcher whose outcome per item id is chosen by the test.

    Outcomes: ``"ok"`` writes ``body`` to the destination, ``"remote"`` fails
    before any transfer, ``"local"`` fails after the transfer started and
    ``"no-file"`` reports success without writing anything.
    """

    outcomes: dict[str, str] = field(default_factory=dict)
    body: bytes = b"payload\n"
    calls: list[str] = field(default_factory=list)

    async def fetch(
        self,
        url: str,
        username: str,
        password: str,
        destination: Path,
        *,
        item_id: str = "",
    ) -> FetchResult:
        self.calls.append(item_id)
        outcome = self.outcomes.get(item_id, "ok")
        if outcome == "remote":
            return FetchResult(attempted=False, error=RemoteFetchError("connection refused"))
        if outcome == "local":
            return FetchResult(attempted=True, error=LocalWriteError("disk full"))
        if outcome == "ok":
            destination.write_bytes(self.body)
        return FetchResult(attempted=True)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def recording_metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def scripted_fetcher() -> ScriptedFetcher:
    return ScriptedFetcher()


@pytest.fixture
def make_item(tmp_path: Path) -> Callable[..., BackupItem]:
    def _make(item_id: str, url: str | None = None) -> BackupItem:
        return BackupItem(
            id=item_id,
            url=url or f"https://files.example.org/{item_id}",
            username="user",
            password="secret",
            destination=tmp_path / f"{item_id}.out",
        )

    return _make
