from __future__ import annotations

import re
from datetime import timedelta
from typing import Any

from backup_remote_files.core.durations import parse_duration
from backup_remote_files.domain.exceptions import ConfigDefectError

_METRIC_PREFIX_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")


def default_duration(raw: str, field_name: str) -> timedelta:
    """Parse a built-in default duration; failure is a programming defect."""
    try:
        return parse_duration(raw)
    except ValueError as exc:
        msg = f"Failed to generate duration '{field_name}' from default value {raw!r}"
        raise ConfigDefectError(msg, details={"field": field_name}) from exc


def coerce_duration(value: Any, field_name: str, *, allow_zero: bool = False) -> timedelta:
    if isinstance(value, timedelta):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_duration(value)
        except ValueError as exc:
            msg = f"Failed to parse duration '{field_name}': {exc}"
            raise ValueError(msg) from exc
    else:
        msg = f"'{field_name}' must be a duration string such as \"1h\" or \"5m\""
        raise ValueError(msg)

    if parsed < timedelta(0) or (parsed == timedelta(0) and not allow_zero):
        msg = f"'{field_name}' must be a positive duration"
        raise ValueError(msg)
    return parsed


def validate_metrics_prefix(value: Any) -> str:
    prefix = str(value).strip()
    if not _METRIC_PREFIX_RE.match(prefix):
        msg = f"Invalid metricsPrefix {value!r}: must match {_METRIC_PREFIX_RE.pattern}"
        raise ValueError(msg)
    return prefix
