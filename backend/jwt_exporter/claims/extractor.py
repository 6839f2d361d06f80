"""Read claims out of a token without verifying its signature."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import Any

import jwt

from ..errors import (
    MalformedTokenError,
    MissingAlgorithmError,
    MissingClaimError,
    MissingTimestampError,
)
from .models import ClaimRecord

LOGGER = logging.getLogger(__name__)

UNKNOWN_ISSUER = "unknown"

# Signatures and time based claims are never checked; only the values are read.
_DECODE_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


def extract_claims(token: str | bytes) -> ClaimRecord:
    """Decode ``token`` into a :class:`ClaimRecord`.

    Raises a subclass of :class:`~jwt_exporter.errors.ExtractionError` when the
    token cannot be decoded or a required claim is unusable.
    """
    if isinstance(token, bytes):
        try:
            token = token.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedTokenError("token is not valid UTF-8") from exc

    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.decode(token, options=dict(_DECODE_OPTIONS))
    except jwt.PyJWTError as exc:
        raise MalformedTokenError(f"failed to parse JWT: {exc}") from exc

    issuer = payload.get("iss")
    if not isinstance(issuer, str):
        LOGGER.warning("Failed to get issuer from JWT", extra={"issuer": repr(issuer)})
        issuer = UNKNOWN_ISSUER

    algorithm = header.get("alg")
    if not isinstance(algorithm, str):
        raise MissingAlgorithmError()

    expires_at = _numeric_date(payload, "exp")
    issued_at = _numeric_date(payload, "iat")

    return ClaimRecord(
        algorithm=algorithm,
        issuer=issuer,
        subject=_required_string(payload, "sub"),
        audience=_required_string(payload, "aud"),
        id=_required_string(payload, "jti"),
        expires_at=expires_at,
        issued_at=issued_at,
        scopes=_scopes(payload.get("scope")),
        roles=_string_items(payload.get("roles")),
        name=_optional_string(payload.get("name")),
        email=_optional_string(payload.get("email")),
    )


def _numeric_date(payload: dict[str, Any], claim: str) -> datetime:
    value = payload.get(claim)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MissingTimestampError(claim)
    if not math.isfinite(value):
        raise MissingTimestampError(claim)
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        raise MissingTimestampError(claim) from exc


def _required_string(payload: dict[str, Any], claim: str) -> str:
    value = payload.get(claim)
    if not isinstance(value, str):
        raise MissingClaimError(claim)
    return value


def _scopes(value: Any) -> tuple[str, ...]:
    # a string scope is one label, it is not split on whitespace
    if isinstance(value, str):
        return (value,)
    return _string_items(value)


def _string_items(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _optional_string(value: Any) -> str:
    return value if isinstance(value, str) else ""
