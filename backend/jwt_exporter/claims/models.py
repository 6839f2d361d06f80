"""Datamodels describing a token read out of a secret."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class ClaimRecord:
    """Normalized snapshot of the claims carried by one token."""

    algorithm: str
    issuer: str
    subject: str
    audience: str
    id: str
    expires_at: datetime
    issued_at: datetime
    scopes: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    name: str = ""
    email: str = ""

    def seconds_until_expiry(self, now: datetime) -> float:
        return (self.expires_at - now).total_seconds()

    def seconds_since_issued(self, now: datetime) -> float:
        return (now - self.issued_at).total_seconds()


@dataclass(slots=True, frozen=True)
class SecretRef:
    """Identifies the secret and data key a token was read from."""

    namespace: str
    name: str
    key: str
