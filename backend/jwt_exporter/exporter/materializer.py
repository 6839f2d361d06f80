"""Turn claim records into gauge samples."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from ..claims.models import ClaimRecord, SecretRef
from .metrics import ExporterMetrics, LabelValues, TokenSample

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MetricMaterializer:
    """Writes one sample per (scope, role) pair of every exported token.

    In live mode each write is visible to scrapes immediately and :meth:`reset`
    empties the published gauges. With ``atomic=True`` a cycle is buffered
    locally and becomes visible in one step when :meth:`publish` is called.
    """

    def __init__(
        self,
        metrics: ExporterMetrics,
        *,
        atomic: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._metrics = metrics
        self._atomic = atomic
        self._clock = clock
        self._pending: dict[LabelValues, TokenSample] | None = None

    @property
    def metrics(self) -> ExporterMetrics:
        return self._metrics

    def reset(self) -> None:
        if self._atomic:
            self._pending = {}
        else:
            self._metrics.tokens.clear()

    def materialize(self, claims: ClaimRecord, secret: SecretRef) -> int:
        """Write the samples for ``claims`` and return how many label tuples were set."""
        now = self._clock()
        sample = TokenSample(
            expires_in_seconds=claims.seconds_until_expiry(now),
            expiration_timestamp=claims.expires_at.timestamp(),
            issued_at_timestamp=claims.issued_at.timestamp(),
            issued_since_seconds=claims.seconds_since_issued(now),
        )
        scopes = claims.scopes or ("",)
        roles = claims.roles or ("",)

        written = 0
        for scope in scopes:
            for role in roles:
                self._write(
                    (
                        claims.algorithm,
                        claims.audience,
                        claims.subject,
                        claims.id,
                        scope,
                        claims.issuer,
                        secret.key,
                        secret.name,
                        secret.namespace,
                        claims.name,
                        claims.email,
                        role,
                    ),
                    sample,
                )
                written += 1
        return written

    def publish(self) -> None:
        """Make the buffered cycle visible; a no-op in live mode."""
        if self._pending is None:
            return
        self._metrics.tokens.replace(self._pending)
        LOGGER.debug("Published token snapshot", extra={"series": len(self._pending)})
        self._pending = None

    def _write(self, labels: LabelValues, sample: TokenSample) -> None:
        if self._pending is not None:
            self._pending[labels] = sample
        else:
            self._metrics.tokens.set(labels, sample)
