"""Human-readable duration parsing (``"1h30m"``, ``"5m"``, ``"1d"``)."""

from __future__ import annotations

import re
from datetime import timedelta

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
    "w": 604800.0,
}

# Longest units first so "ms" wins over "m".
_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h|d|w)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration string into a ``timedelta``.

    Accepts a sequence of ``<number><unit>`` components with an optional
    leading sign. ``"0"`` is the only unit-less value accepted.

    Raises:
        ValueError: If the string is empty or contains anything else.
    """
    if not isinstance(value, str):
        msg = f"duration must be a string, got {type(value).__name__}"
        raise ValueError(msg)

    text = value.strip()
    original = text
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        msg = f"invalid duration {original!r}"
        raise ValueError(msg)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT_RE.match(text, pos)
        if match is None:
            msg = f"invalid duration {original!r}"
            raise ValueError(msg)
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    return timedelta(seconds=sign * total)


def format_duration(value: timedelta) -> str:
    """Render a ``timedelta`` back into the compact ``1h30m0s`` form."""
    total = value.total_seconds()
    if total == 0:
        return "0s"
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    seconds_text = f"{seconds:g}s"
    if hours:
        return f"{sign}{int(hours)}h{int(minutes)}m{seconds_text}"
    if minutes:
        return f"{sign}{int(minutes)}m{seconds_text}"
    return f"{sign}{seconds_text}"
