"""HttpFetcher against an in-memory httpx transport."""

from __future__ import annotations

import base64

import httpx
import pytest

from backup_remote_files.adapters.http_fetcher import HttpFetcher
from backup_remote_files.domain.exceptions import LocalWriteError, RemoteFetchError


def _fetcher(handler) -> HttpFetcher:
    return HttpFetcher(timeout=5.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_streams_body_to_destination(tmp_path):
    destination = tmp_path / "out.bin"

    async with _fetcher(lambda request: httpx.Response(200, content=b"voh0ahch3E\n")) as fetcher:
        result = await fetcher.fetch("http://backup.test/file", "", "", destination, item_id="a")

    assert result.ok is True
    assert result.attempted is True
    assert destination.read_bytes() == b"voh0ahch3E\n"


@pytest.mark.asyncio
async def test_fetch_sends_basic_auth(tmp_path):
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, content=b"x")

    async with _fetcher(handler) as fetcher:
        await fetcher.fetch("http://backup.test/file", "admin", "s3cret", tmp_path / "out")

    expected = base64.b64encode(b"admin:s3cret").decode()
    assert seen == [f"Basic {expected}"]


@pytest.mark.asyncio
async def test_fetch_overwrites_previous_backup(tmp_path):
    destination = tmp_path / "out.bin"
    destination.write_bytes(b"an older and longer backup")

    async with _fetcher(lambda request: httpx.Response(200, content=b"new")) as fetcher:
        await fetcher.fetch("http://backup.test/file", "", "", destination)

    assert destination.read_bytes() == b"new"


@pytest.mark.asyncio
async def test_connection_failure_is_not_attempted(tmp_path):
    destination = tmp_path / "out.bin"

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _fetcher(handler) as fetcher:
        result = await fetcher.fetch("http://backup.test/file", "", "", destination, item_id="a")

    assert result.attempted is False
    assert isinstance(result.error, RemoteFetchError)
    assert result.error.details["id"] == "a"
    assert not destination.exists()


@pytest.mark.asyncio
async def test_http_error_status_leaves_destination_untouched(tmp_path):
    destination = tmp_path / "out.bin"
    destination.write_bytes(b"previous good backup")

    async with _fetcher(lambda request: httpx.Response(401, content=b"denied")) as fetcher:
        result = await fetcher.fetch("http://backup.test/file", "bad", "creds", destination)

    assert result.attempted is False
    assert isinstance(result.error, RemoteFetchError)
    assert result.error.details["status_code"] == 401
    assert destination.read_bytes() == b"previous good backup"


@pytest.mark.asyncio
async def test_unwritable_destination_is_attempted_but_failed(tmp_path):
    destination = tmp_path / "missing-dir" / "out.bin"

    async with _fetcher(lambda request: httpx.Response(200, content=b"data")) as fetcher:
        result = await fetcher.fetch("http://backup.test/file", "", "", destination)

    assert result.attempted is True
    assert isinstance(result.error, LocalWriteError)
    assert result.ok is False

