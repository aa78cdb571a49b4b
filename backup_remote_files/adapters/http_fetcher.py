"""HTTP retrieval of one remote file with basic authentication."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from backup_remote_files.domain.exceptions import FetchError, LocalWriteError, RemoteFetchError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of one retrieval.

    ``attempted`` reports whether the remote phase succeeded far enough for the
    destination to be written; ``error`` is set when any stage failed.
    """

    attempted: bool
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class HttpFetcher:
    """Stream remote files to local destinations with ``httpx``.

    Args:
        timeout: Per network operation timeout in seconds; ``None`` blocks
            without limit.
        transport: Optional transport, mainly for tests.
        follow_redirects: Whether redirects are followed.
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        follow_redirects: bool = True,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            follow_redirects=follow_redirects,
        )

    async def fetch(
        self,
        url: str,
        username: str,
        password: str,
        destination: Path,
        *,
        item_id: str = "",
    ) -> FetchResult:
        context = {"id": item_id, "url": url}
        try:
            async with self._client.stream(
                "GET", url, auth=httpx.BasicAuth(username, password)
            ) as response:
                if response.is_error:
                    logger.error(
                        "backup_fetch_failed",
                        extra={**context, "status_code": response.status_code},
                    )
                    return FetchResult(
                        attempted=False,
                        error=RemoteFetchError(
                            f"Remote server answered HTTP {response.status_code}",
                            details={**context, "status_code": response.status_code},
                        ),
                    )
                return await self._write_body(response, destination, context)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("backup_fetch_failed", extra={**context, "error": str(exc)})
            return FetchResult(
                attempted=False,
                error=RemoteFetchError(
                    f"Failed to read data: {exc}",
                    details={**context, "error_type": type(exc).__name__},
                ),
            )

    async def _write_body(
        self, response: httpx.Response, destination: Path, context: dict[str, str]
    ) -> FetchResult:
        context = {**context, "output_file": str(destination)}
        try:
            output = await asyncio.to_thread(destination.open, "wb")
        except OSError as exc:
            logger.error("backup_write_failed", extra={**context, "error": str(exc)})
            return FetchResult(
                attempted=True,
                error=LocalWriteError(f"Failed to open file for writing: {exc}", details=context),
            )

        try:
            async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                await asyncio.to_thread(output.write, chunk)
            await asyncio.to_thread(output.close)
        except (OSError, httpx.HTTPError) as exc:
            logger.error("backup_write_failed", extra={**context, "error": str(exc)})
            return FetchResult(
                attempted=True,
                error=LocalWriteError(f"Failed to write contents to file: {exc}", details=context),
            )
        finally:
            if not output.closed:
                with contextlib.suppress(OSError):
                    await asyncio.to_thread(output.close)

        logger.debug("backup_written", extra=context)
        return FetchResult(attempted=True)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
