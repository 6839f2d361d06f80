"""Application service that owns the secret checker task."""

from __future__ import annotations

import asyncio
import logging

from ..config import Settings
from ..discovery.source import KubernetesSecretSource, SecretSource
from ..exporter.materializer import MetricMaterializer
from ..exporter.metrics import ExporterMetrics
from .poller import SecretChecker

LOGGER = logging.getLogger(__name__)


class CheckerService:
    """Manage the lifecycle of the secret checker and its dependencies."""

    def __init__(
        self,
        settings: Settings,
        metrics: ExporterMetrics,
        source: SecretSource | None = None,
    ) -> None:
        self._settings = settings
        self._metrics = metrics
        self._source = source
        self._checker: SecretChecker | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Build the cluster client and start polling.

        Raises :class:`~jwt_exporter.errors.FatalStartupError` when cluster
        credentials cannot be built.
        """
        if self._source is None:
            self._source = KubernetesSecretSource.from_kubeconfig(
                self._settings.expanded_kubeconfig_path
            )

        if not self._settings.label_selectors:
            LOGGER.warning("No label selectors configured; every secret in the cluster is inspected")

        materializer = MetricMaterializer(self._metrics, atomic=self._settings.atomic_publish)
        self._checker = SecretChecker(
            source=self._source,
            materializer=materializer,
            period_seconds=self._settings.polling_interval_seconds,
            label_selectors=self._settings.label_selectors,
            annotation_key=self._settings.annotation_key,
        )
        self._task = asyncio.create_task(self._safe_run(self._checker))

    async def stop(self) -> None:
        """Stop the checker and wait for the current cycle to finish."""
        if self._checker is not None:
            await self._checker.stop()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        self._checker = None
        self._task = None

    async def _safe_run(self, checker: SecretChecker) -> None:
        try:
            await checker.run()
        except asyncio.CancelledError:  # pragma: no cover - control flow
            raise
        except Exception:
            LOGGER.exception("Secret checker crashed")
            self._metrics.errors_total.inc()
