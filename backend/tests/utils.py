from __future__ import annotations

import base64
import json
import time
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt_exporter.config import DEFAULT_ANNOTATION_KEY
from jwt_exporter.discovery.models import SecretBlob

SIGNING_SECRET = "jwt-exporter-test-signing-secret-0123456789"


def build_claims(
    *,
    now: int | None = None,
    expires_in: int = 3600,
    omit: tuple[str, ...] = (),
    **overrides: Any,
) -> dict[str, Any]:
    issued_at = int(time.time()) if now is None else now
    claims: dict[str, Any] = {
        "iss": "https://issuer.example.com",
        "sub": "service-account",
        "aud": "billing-api",
        "jti": "token-1",
        "iat": issued_at,
        "exp": issued_at + expires_in,
    }
    claims.update(overrides)
    for claim in omit:
        claims.pop(claim, None)
    return claims


def build_token(
    claims: dict[str, Any],
    *,
    key: str | bytes = SIGNING_SECRET,
    algorithm: str = "HS256",
) -> str:
    return jwt.encode(claims, key, algorithm=algorithm)


def raw_token(header: Any, payload: Any) -> str:
    """Assemble a token by hand so headers and claims can be arbitrarily wrong."""

    def segment(value: Any) -> str:
        encoded = base64.urlsafe_b64encode(json.dumps(value).encode("utf-8"))
        return encoded.rstrip(b"=").decode("ascii")

    return f"{segment(header)}.{segment(payload)}.c2lnbmF0dXJl"


def generate_rsa_private_pem() -> bytes:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def secret_blob(
    name: str,
    namespace: str,
    token: str | None,
    *,
    key: str = "tok",
    annotation_key: str = DEFAULT_ANNOTATION_KEY,
    labels: dict[str, str] | None = None,
) -> SecretBlob:
    data = {} if token is None else {key: token.encode("utf-8")}
    return SecretBlob(
        name=name,
        namespace=namespace,
        labels=dict(labels or {}),
        annotations={annotation_key: key},
        data=data,
    )
