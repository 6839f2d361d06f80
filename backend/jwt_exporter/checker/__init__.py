"""Periodic secret reconciliation."""

from __future__ import annotations

from .poller import CycleSummary, SecretChecker, next_tick
from .service import CheckerService

__all__ = ["CheckerService", "CycleSummary", "SecretChecker", "next_tick"]
