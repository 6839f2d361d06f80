"""Prometheus metrics exposed by the exporter."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.gc_collector import GCCollector
from prometheus_client.metrics_core import Metric
from prometheus_client.platform_collector import PlatformCollector
from prometheus_client.process_collector import ProcessCollector
from prometheus_client.registry import Collector

NAMESPACE = "jwt_exporter"

LABEL_NAMES = (
    "algorithm",
    "audience",
    "subject",
    "id",
    "scope",
    "issuer",
    "secret_key",
    "secret_name",
    "secret_namespace",
    "name",
    "email",
    "role",
)

LabelValues = tuple[str, str, str, str, str, str, str, str, str, str, str, str]


@dataclass(slots=True, frozen=True)
class TokenSample:
    """The four measured quantities published for one label tuple."""

    expires_in_seconds: float
    expiration_timestamp: float
    issued_at_timestamp: float
    issued_since_seconds: float


_GAUGES = (
    ("jwt_expires_in_seconds", "Number of seconds until the JWT expires.", "expires_in_seconds"),
    ("jwt_expiration_timestamp", "Timestamp of when the JWT expires.", "expiration_timestamp"),
    ("jwt_issued_at_timestamp", "Timestamp of when the JWT was issued.", "issued_at_timestamp"),
    ("jwt_issued_since_seconds", "Number of seconds since the JWT was issued.", "issued_since_seconds"),
)


class TokenGaugeCollector(Collector):
    """Serves the per-token gauge families from a mapping of label tuples to samples.

    The mapping is either mutated sample by sample or swapped wholesale with
    :meth:`replace`; scrapes always read a copy taken under the lock.
    """

    def __init__(self) -> None:
        self._samples: dict[LabelValues, TokenSample] = {}
        self._lock = threading.Lock()

    def set(self, labels: LabelValues, sample: TokenSample) -> None:
        with self._lock:
            self._samples[labels] = sample

    def clear(self) -> None:
        with self._lock:
            self._samples = {}

    def replace(self, samples: Mapping[LabelValues, TokenSample]) -> None:
        snapshot = dict(samples)
        with self._lock:
            self._samples = snapshot

    def snapshot(self) -> dict[LabelValues, TokenSample]:
        with self._lock:
            return dict(self._samples)

    def describe(self) -> Iterator[Metric]:
        return self._families({})

    def collect(self) -> Iterator[Metric]:
        return self._families(self.snapshot())

    def _families(self, samples: Mapping[LabelValues, TokenSample]) -> Iterator[Metric]:
        for name, documentation, field in _GAUGES:
            family = GaugeMetricFamily(f"{NAMESPACE}_{name}", documentation, labels=LABEL_NAMES)
            for labels, sample in samples.items():
                family.add_metric(list(labels), getattr(sample, field))
            yield family


class ExporterMetrics:
    """Owns the registry and every metric the exporter publishes."""

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        process_metrics: bool = False,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.tokens = TokenGaugeCollector()
        self.registry.register(self.tokens)

        self.errors_total = Counter(
            "error_total",
            "JWT Exporter Errors",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.poll_duration_seconds = Histogram(
            "poll_duration_seconds",
            "Duration of a full secret polling cycle",
            namespace=NAMESPACE,
            buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
            registry=self.registry,
        )

        if process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)
