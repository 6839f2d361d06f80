"""Periodic reconciliation of cluster secrets into token metrics."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..claims.extractor import extract_claims
from ..claims.models import SecretRef
from ..discovery.models import SecretBlob
from ..discovery.source import SecretSource
from ..errors import ExtractionError
from ..exporter.materializer import MetricMaterializer

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CycleSummary:
    """Counters describing one polling cycle."""

    namespaces: int = 0
    secrets: int = 0
    exported: int = 0
    errors: int = 0


def next_tick(deadline: float, now: float, period: float) -> float:
    """Return the first tick of the ``deadline + k * period`` grid strictly after ``now``."""
    if now < deadline:
        return deadline
    missed = math.floor((now - deadline) / period) + 1
    return deadline + missed * period


class SecretChecker:
    """Polls secrets on a fixed schedule and republishes their token claims."""

    def __init__(
        self,
        *,
        source: SecretSource,
        materializer: MetricMaterializer,
        period_seconds: float,
        label_selectors: Sequence[str],
        annotation_key: str,
    ) -> None:
        self._source = source
        self._materializer = materializer
        self._metrics = materializer.metrics
        self._period = period_seconds
        self._label_selectors = list(label_selectors)
        self._annotation_key = annotation_key
        self._stop_event = asyncio.Event()

    async def run(self) -> None:
        """Run polling cycles until stopped.

        Ticks stay on a fixed grid. When a cycle overruns one or more ticks they
        collapse into a single immediate cycle.
        """
        loop = asyncio.get_running_loop()
        LOGGER.info(
            "Starting secret checker",
            extra={"interval": self._period, "label_selectors": self._label_selectors},
        )
        deadline = loop.time() + self._period
        while not self._stop_event.is_set():
            await self._run_once()
            now = loop.time()
            if now >= deadline:
                deadline = next_tick(deadline, now, self._period)
                continue
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=deadline - now)
            except TimeoutError:
                pass
            deadline += self._period

    async def stop(self) -> None:
        self._stop_event.set()

    async def _run_once(self) -> CycleSummary:
        LOGGER.info("Begin periodic check")
        summary = CycleSummary()
        with self._metrics.poll_duration_seconds.time():
            self._materializer.reset()
            try:
                for secret in await self._discover(summary):
                    self._export_secret(secret, summary)
            finally:
                # a buffered cycle must never stay open
                self._materializer.publish()

        LOGGER.info(
            "Poll cycle completed",
            extra={
                "namespaces": summary.namespaces,
                "secrets": summary.secrets,
                "exported": summary.exported,
                "errors": summary.errors,
            },
        )
        return summary

    async def _discover(self, summary: CycleSummary) -> list[SecretBlob]:
        try:
            namespaces = await self._source.list_namespaces()
        except Exception:
            LOGGER.exception("Error requesting namespaces")
            self._record_error(summary)
            return []

        summary.namespaces = len(namespaces)
        selectors: list[str | None] = list(self._label_selectors) or [None]
        secrets: dict[tuple[str, str], SecretBlob] = {}
        for namespace in namespaces:
            LOGGER.debug("Adding namespace to check", extra={"namespace": namespace})
            for selector in selectors:
                try:
                    found = await self._source.list_secrets(namespace, selector)
                except Exception:
                    LOGGER.exception(
                        "Error requesting secrets",
                        extra={"namespace": namespace, "label_selector": selector},
                    )
                    self._record_error(summary)
                    continue
                for secret in found:
                    secrets.setdefault((secret.namespace, secret.name), secret)

        summary.secrets = len(secrets)
        return list(secrets.values())

    def _export_secret(self, secret: SecretBlob, summary: CycleSummary) -> None:
        context = {"secret_name": secret.name, "secret_namespace": secret.namespace}
        LOGGER.info("Reviewing secret", extra=context)

        key = secret.annotations.get(self._annotation_key, "")
        token = secret.data.get(key, b"")
        try:
            claims = extract_claims(token)
            self._materializer.materialize(
                claims, SecretRef(namespace=secret.namespace, name=secret.name, key=key)
            )
        except ExtractionError as exc:
            LOGGER.error(
                "Error exporting metrics for secret",
                extra={**context, "secret_key": key, "error": str(exc)},
            )
            self._record_error(summary)
            return
        except Exception:
            LOGGER.exception("Unexpected failure exporting secret", extra=context)
            self._record_error(summary)
            return

        summary.exported += 1
        LOGGER.info("Metrics exported for secret", extra=context)

    def _record_error(self, summary: CycleSummary) -> None:
        summary.errors += 1
        self._metrics.errors_total.inc()
