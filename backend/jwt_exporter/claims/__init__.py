"""Token claim extraction."""

from __future__ import annotations

from .extractor import extract_claims
from .models import ClaimRecord, SecretRef

__all__ = ["ClaimRecord", "SecretRef", "extract_claims"]
