"""Data model for tracked backups and sweep outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class SweepKind(StrEnum):
    """Which working set a sweep covers."""

    FULL = "full"
    RETRY = "retry"


@dataclass(slots=True)
class BackupItem:
    """One tracked remote file.

    ``last_succeeded`` starts in the safe ``True`` state so the first cycle is
    a full sweep rather than a retry-only sweep.
    """

    id: str
    url: str
    username: str
    password: str
    destination: Path
    last_succeeded: bool = True

    def __repr__(self) -> str:
        return (
            f"BackupItem(id={self.id!r}, url={self.url!r}, destination={str(self.destination)!r}, "
            f"last_succeeded={self.last_succeeded})"
        )


@dataclass(frozen=True, slots=True)
class SweepResult:
    """Aggregate outcome of one sweep."""

    kind: SweepKind
    all_succeeded: bool
    attempted: int = 0
    failed: int = 0


def select_working_set(items: list[BackupItem], kind: SweepKind) -> list[BackupItem]:
    """Return the items a sweep of ``kind`` must consider.

    A full sweep covers every item regardless of its flag; a retry sweep only
    the items whose last retrieval failed.
    """
    if kind is SweepKind.FULL:
        return list(items)
    return [item for item in items if not item.last_succeeded]
