"""Exception taxonomy shared across the exporter."""

from __future__ import annotations


class JWTExporterError(Exception):
    """Base class for exporter errors."""


class FatalStartupError(JWTExporterError):
    """Raised when the process cannot start (configuration or cluster credentials)."""


class DiscoveryError(JWTExporterError):
    """Raised when namespaces or secrets cannot be listed."""


class ExtractionError(JWTExporterError):
    """Raised when a token cannot be turned into a claim record."""


class MalformedTokenError(ExtractionError):
    """Raised when the token structure cannot be decoded."""


class MissingAlgorithmError(ExtractionError):
    """Raised when the token header carries no usable ``alg``."""

    def __init__(self) -> None:
        super().__init__("token header has no algorithm")


class MissingTimestampError(ExtractionError):
    """Raised when ``exp`` or ``iat`` is absent or not a valid point in time."""

    def __init__(self, claim: str) -> None:
        super().__init__(f"token claim '{claim}' is missing or not a valid timestamp")
        self.claim = claim


class MissingClaimError(ExtractionError):
    """Raised when a required string claim is absent or not a string."""

    def __init__(self, claim: str) -> None:
        super().__init__(f"token claim '{claim}' is missing or not a string")
        self.claim = claim
