"""Datamodels returned by secret sources."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class SecretBlob:
    """A secret as seen by the exporter, with data values already base64 decoded."""

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    data: dict[str, bytes] = field(default_factory=dict)
