"""
FastAPI application exposing the exporter metrics.

Usage:
    app = create_app(metrics)
    uvicorn.Server(uvicorn.Config(app, port=9289)).serve()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.responses import Response

if TYPE_CHECKING:
    from backup_remote_files.observability.metrics import BackupMetrics


def create_app(metrics: BackupMetrics, *, version: str = "0.0.0") -> FastAPI:
    """Build the HTTP app serving ``GET /metrics`` for ``metrics``."""
    app = FastAPI(
        title="Backup remote files exporter",
        version=version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/metrics")
    async def scrape_metrics() -> Response:
        return Response(content=metrics.render(), media_type=metrics.content_type)

    return app
