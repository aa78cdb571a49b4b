"""Sweep execution: per-item flags, metrics emission and aggregate outcome."""

from __future__ import annotations

import logging

import pytest

from backup_remote_files.domain.models import SweepKind, select_working_set
from backup_remote_files.observability.metrics import (
    BACKUP_FAILED,
    BACKUP_NB,
    BACKUP_SIZE,
    BACKUP_STATUS,
    BACKUP_TIME,
)
from backup_remote_files.services.retrieval import SweepExecutor


@pytest.fixture
def executor(scripted_fetcher, recording_metrics):
    return SweepExecutor(scripted_fetcher, recording_metrics, wall_clock=lambda: 1_700_000_000.7)


def test_items_start_in_succeeded_state(make_item):
    assert make_item("a").last_succeeded is True


def test_full_working_set_contains_every_item(make_item):
    items = [make_item("a"), make_item("b")]
    items[0].last_succeeded = False

    assert select_working_set(items, SweepKind.FULL) == items


def test_retry_working_set_contains_only_failed_items(make_item):
    items = [make_item("a"), make_item("b"), make_item("c")]
    items[1].last_succeeded = False

    assert select_working_set(items, SweepKind.RETRY) == [items[1]]


@pytest.mark.asyncio
async def test_successful_item_records_status_size_and_time(
    executor, make_item, scripted_fetcher, recording_metrics
):
    item = make_item("a")
    scripted_fetcher.body = b"0123456789"

    result = await executor.run_sweep([item])

    assert result.all_succeeded is True
    assert result.kind is SweepKind.FULL
    assert item.last_succeeded is True
    assert recording_metrics.gauge(BACKUP_STATUS, "a") == 1
    assert recording_metrics.gauge(BACKUP_SIZE, "a") == 10
    assert recording_metrics.gauge(BACKUP_TIME, "a") == 1_700_000_000
    assert recording_metrics.counter(BACKUP_FAILED, "a") == 0
    assert recording_metrics.counter(BACKUP_NB) == 1


@pytest.mark.asyncio
async def test_remote_failure_marks_item_for_retry(
    executor, make_item, scripted_fetcher, recording_metrics
):
    item = make_item("a")
    scripted_fetcher.outcomes["a"] = "remote"

    result = await executor.run_sweep([item])

    assert result.all_succeeded is False
    assert result.failed == 1
    assert item.last_succeeded is False
    assert recording_metrics.gauge(BACKUP_STATUS, "a") == 0
    assert recording_metrics.counter(BACKUP_FAILED, "a") == 1
    assert recording_metrics.gauge(BACKUP_SIZE, "a") is None


@pytest.mark.asyncio
async def test_local_write_failure_is_reported_but_not_retried(
    executor, make_item, scripted_fetcher, recording_metrics
):
    item = make_item("a")
    scripted_fetcher.outcomes["a"] = "local"

    result = await executor.run_sweep([item])

    assert item.last_succeeded is True
    assert result.all_succeeded is True
    assert result.failed == 1
    assert recording_metrics.gauge(BACKUP_STATUS, "a") == 0
    assert recording_metrics.counter(BACKUP_FAILED, "a") == 1


@pytest.mark.asyncio
async def test_size_query_failure_keeps_item_out_of_retry(
    executor, make_item, scripted_fetcher, recording_metrics
):
    item = make_item("a")
    scripted_fetcher.outcomes["a"] = "no-file"

    result = await executor.run_sweep([item])

    assert item.last_succeeded is True
    assert result.all_succeeded is True
    assert recording_metrics.gauge(BACKUP_STATUS, "a") == 0
    assert recording_metrics.counter(BACKUP_FAILED, "a") == 1
    assert recording_metrics.gauge(BACKUP_SIZE, "a") is None


@pytest.mark.asyncio
async def test_failure_does_not_abort_the_sweep(
    executor, make_item, scripted_fetcher, recording_metrics
):
    items = [make_item("bad"), make_item("good")]
    scripted_fetcher.outcomes["bad"] = "remote"

    result = await executor.run_sweep(items)

    assert scripted_fetcher.calls == ["bad", "good"]
    assert result.all_succeeded is False
    assert result.attempted == 2
    assert recording_metrics.gauge(BACKUP_STATUS, "good") == 1
    assert recording_metrics.gauge(BACKUP_STATUS, "bad") == 0


@pytest.mark.asyncio
async def test_failed_item_is_optimistically_reset_before_fetch(
    executor, make_item, scripted_fetcher
):
    item = make_item("a")
    item.last_succeeded = False

    result = await executor.run_sweep([item], SweepKind.RETRY)

    assert item.last_succeeded is True
    assert result.all_succeeded is True
    assert result.kind is SweepKind.RETRY


@pytest.mark.asyncio
async def test_outcome_only_covers_the_working_set(executor, make_item, scripted_fetcher):
    outside = make_item("outside")
    outside.last_succeeded = False
    inside = make_item("inside")

    result = await executor.run_sweep([inside])

    assert result.all_succeeded is True
    assert scripted_fetcher.calls == ["inside"]
    assert outside.last_succeeded is False


@pytest.mark.asyncio
async def test_sweep_counter_increments_once_per_sweep(executor, make_item, recording_metrics):
    await executor.run_sweep([make_item("a"), make_item("b"), make_item("c")])
    assert recording_metrics.counter(BACKUP_NB) == 1

    await executor.run_sweep([])
    assert recording_metrics.counter(BACKUP_NB) == 2


@pytest.mark.asyncio
async def test_empty_sweep_reports_success(executor, scripted_fetcher):
    result = await executor.run_sweep([], SweepKind.RETRY)

    assert result.all_succeeded is True
    assert result.attempted == 0
    assert scripted_fetcher.calls == []


@pytest.mark.asyncio
async def test_failure_counter_accumulates_across_sweeps(
    executor, make_item, scripted_fetcher, recording_metrics
):
    item = make_item("a")
    scripted_fetcher.outcomes["a"] = "remote"

    await executor.run_sweep([item])
    await executor.run_sweep([item], SweepKind.RETRY)

    assert recording_metrics.counter(BACKUP_FAILED, "a") == 2


@pytest.mark.asyncio
async def test_sweep_logs_carry_size_and_duration(executor, make_item, scripted_fetcher, caplog):
    caplog.set_level(logging.INFO, logger="backup_remote_files.services.retrieval")
    scripted_fetcher.body = b"12345"

    await executor.run_sweep([make_item("a")], SweepKind.FULL)

    retrieved = [r for r in caplog.records if r.getMessage() == "backup_retrieved"]
    finished = [r for r in caplog.records if r.getMessage() == "sweep_finished"]
    assert [r.size_bytes for r in retrieved] == [5]
    assert len(finished) == 1
    assert finished[0].duration_ms >= 0
