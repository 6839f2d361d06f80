"""Prometheus publication of token claims."""

from __future__ import annotations

from .materializer import MetricMaterializer
from .metrics import LABEL_NAMES, NAMESPACE, ExporterMetrics, TokenGaugeCollector, TokenSample

__all__ = [
    "LABEL_NAMES",
    "NAMESPACE",
    "ExporterMetrics",
    "MetricMaterializer",
    "TokenGaugeCollector",
    "TokenSample",
]
