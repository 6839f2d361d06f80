"""Discovery of namespaces and secrets in the cluster."""

from __future__ import annotations

from .models import SecretBlob
from .source import (
    InMemorySecretSource,
    KubernetesSecretSource,
    SecretSource,
    build_core_api,
    matches_selector,
)

__all__ = [
    "InMemorySecretSource",
    "KubernetesSecretSource",
    "SecretBlob",
    "SecretSource",
    "build_core_api",
    "matches_selector",
]
