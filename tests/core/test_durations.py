"""Tests for human-readable duration parsing."""

from datetime import timedelta

import pytest

from backup_remote_files.core.durations import format_duration, parse_duration


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1h", timedelta(hours=1)),
        ("5m", timedelta(minutes=5)),
        ("10s", timedelta(seconds=10)),
        ("1d", timedelta(days=1)),
        ("1w", timedelta(weeks=1)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5h", timedelta(minutes=90)),
        ("250ms", timedelta(milliseconds=250)),
        ("0", timedelta(0)),
        ("-2m", timedelta(minutes=-2)),
        (" 2m ", timedelta(minutes=2)),
    ],
)
def test_parse_duration_accepts_common_forms(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "1", "h", "1x", "1h 30m", "abc", "1h-5m", "-"])
def test_parse_duration_rejects_malformed_values(raw):
    with pytest.raises(ValueError, match="invalid duration"):
        parse_duration(raw)


def test_parse_duration_rejects_non_strings():
    with pytest.raises(ValueError, match="must be a string"):
        parse_duration(60)  # type: ignore[arg-type]


def test_format_duration_is_compact():
    assert format_duration(timedelta(hours=1, minutes=30)) == "1h30m0s"
    assert format_duration(timedelta(minutes=5)) == "5m0s"
    assert format_duration(timedelta(seconds=10)) == "10s"
    assert format_duration(timedelta(days=1)) == "24h0m0s"
    assert format_duration(timedelta(0)) == "0s"
