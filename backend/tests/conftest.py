import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from jwt_exporter.exporter.metrics import ExporterMetrics  # noqa: E402

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def metrics() -> ExporterMetrics:
    """Metrics bound to a private registry so tests never share samples."""
    return ExporterMetrics(CollectorRegistry())


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
