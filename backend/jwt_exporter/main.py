"""FastAPI application serving the exporter metrics."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import __version__
from .checker.service import CheckerService
from .config import Settings
from .discovery.source import SecretSource
from .exporter.metrics import ExporterMetrics

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    *,
    metrics: ExporterMetrics | None = None,
    source: SecretSource | None = None,
) -> FastAPI:
    """Build the exporter application serving the metrics endpoint."""
    exporter_metrics = metrics if metrics is not None else ExporterMetrics(process_metrics=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start the secret checker with the application and stop it on shutdown."""
        checker_service = CheckerService(settings, exporter_metrics, source=source)
        await checker_service.start()
        state = cast(Any, app.state)
        state.checker_service = checker_service
        LOGGER.info("Starting JWT Exporter", extra={"address": settings.address})
        yield
        await checker_service.stop()

    app = FastAPI(
        title="JWT Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    state = cast(Any, app.state)
    state.settings = settings
    state.metrics = exporter_metrics

    @app.get(settings.metrics_path, include_in_schema=False)
    def metrics_endpoint() -> Response:
        return Response(
            content=generate_latest(exporter_metrics.registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        """Liveness probe used by Kubernetes."""
        return {"status": "ok"}

    return app
