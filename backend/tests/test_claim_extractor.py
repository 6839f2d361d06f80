from __future__ import annotations

import time
from datetime import UTC, datetime

import pytest
from jwt_exporter.claims.extractor import UNKNOWN_ISSUER, extract_claims
from jwt_exporter.errors import (
    ExtractionError,
    MalformedTokenError,
    MissingAlgorithmError,
    MissingClaimError,
    MissingTimestampError,
)

from .utils import build_claims, build_token, generate_rsa_private_pem, raw_token

HEADER = {"alg": "HS256", "typ": "JWT"}


def test_extract_valid_token_copies_required_claims() -> None:
    now = int(time.time())
    token = build_token(
        build_claims(now=now, name="Billing Robot", email="robot@example.com")
    )

    claims = extract_claims(token)

    assert claims.algorithm == "HS256"
    assert claims.issuer == "https://issuer.example.com"
    assert claims.subject == "service-account"
    assert claims.audience == "billing-api"
    assert claims.id == "token-1"
    assert claims.issued_at == datetime.fromtimestamp(now, tz=UTC)
    assert claims.expires_at == datetime.fromtimestamp(now + 3600, tz=UTC)
    assert claims.name == "Billing Robot"
    assert claims.email == "robot@example.com"
    assert claims.scopes == ()
    assert claims.roles == ()


def test_extract_accepts_bytes() -> None:
    token = build_token(build_claims())

    claims = extract_claims(token.encode("utf-8"))

    assert claims.subject == "service-account"


def test_extract_never_verifies_signature() -> None:
    token = build_token(build_claims(), key=generate_rsa_private_pem(), algorithm="RS256")

    claims = extract_claims(token)

    assert claims.algorithm == "RS256"


def test_extract_accepts_expired_token() -> None:
    token = build_token(build_claims(now=1_000_000, expires_in=60))

    claims = extract_claims(token)

    assert claims.expires_at == datetime.fromtimestamp(1_000_060, tz=UTC)


@pytest.mark.parametrize("issuer", [None, 42, ["a", "b"]])
def test_extract_defaults_unreadable_issuer(issuer: object) -> None:
    payload = build_claims(omit=("iss",)) if issuer is None else build_claims(iss=issuer)

    claims = extract_claims(raw_token(HEADER, payload))

    assert claims.issuer == UNKNOWN_ISSUER


@pytest.mark.parametrize("claim", ["exp", "iat"])
def test_extract_requires_timestamps(claim: str) -> None:
    token = build_token(build_claims(omit=(claim,)))

    with pytest.raises(MissingTimestampError) as exc:
        extract_claims(token)

    assert exc.value.claim == claim


@pytest.mark.parametrize("value", ["tomorrow", True, None, 1e300])
def test_extract_rejects_invalid_expiry(value: object) -> None:
    token = raw_token(HEADER, build_claims(exp=value))

    with pytest.raises(MissingTimestampError) as exc:
        extract_claims(token)

    assert exc.value.claim == "exp"


def test_extract_accepts_fractional_timestamps() -> None:
    token = raw_token(HEADER, build_claims(now=1_700_000_000, exp=1_700_000_100.5))

    claims = extract_claims(token)

    assert claims.expires_at.timestamp() == pytest.approx(1_700_000_100.5)


@pytest.mark.parametrize("claim", ["sub", "aud", "jti"])
def test_extract_requires_string_claims(claim: str) -> None:
    token = build_token(build_claims(omit=(claim,)))

    with pytest.raises(MissingClaimError) as exc:
        extract_claims(token)

    assert exc.value.claim == claim


def test_extract_rejects_audience_list() -> None:
    token = raw_token(HEADER, build_claims(aud=["billing-api", "ledger"]))

    with pytest.raises(MissingClaimError) as exc:
        extract_claims(token)

    assert exc.value.claim == "aud"


def test_extract_requires_algorithm_header() -> None:
    token = raw_token({"typ": "JWT"}, build_claims())

    with pytest.raises(MissingAlgorithmError):
        extract_claims(token)


def test_missing_algorithm_wins_over_missing_timestamps() -> None:
    token = raw_token({"typ": "JWT"}, build_claims(omit=("exp", "iat")))

    with pytest.raises(MissingAlgorithmError):
        extract_claims(token)


@pytest.mark.parametrize(
    "token",
    [
        "",
        "not-a-token",
        "a.b",
        raw_token(HEADER, ["not", "an", "object"]),
        b"\xff\xfe\xfd",
    ],
)
def test_extract_rejects_malformed_tokens(token: str | bytes) -> None:
    with pytest.raises(MalformedTokenError):
        extract_claims(token)


def test_malformed_token_is_an_extraction_error() -> None:
    with pytest.raises(ExtractionError):
        extract_claims(b"")


def test_single_string_scope_is_not_split() -> None:
    token = build_token(build_claims(scope="read write"))

    claims = extract_claims(token)

    assert claims.scopes == ("read write",)


def test_scope_array_skips_non_strings() -> None:
    token = raw_token(HEADER, build_claims(scope=["read", 7, None, "write"]))

    claims = extract_claims(token)

    assert claims.scopes == ("read", "write")


@pytest.mark.parametrize("scope", [42, {"read": True}])
def test_scope_of_unknown_shape_is_ignored(scope: object) -> None:
    claims = extract_claims(raw_token(HEADER, build_claims(scope=scope)))

    assert claims.scopes == ()


def test_roles_only_accept_arrays() -> None:
    listed = extract_claims(raw_token(HEADER, build_claims(roles=["admin", 3, "viewer"])))
    single = extract_claims(build_token(build_claims(roles="admin")))

    assert listed.roles == ("admin", "viewer")
    assert single.roles == ()


def test_identity_fields_are_best_effort() -> None:
    claims = extract_claims(raw_token(HEADER, build_claims(name=12, email=["a@example.com"])))

    assert claims.name == ""
    assert claims.email == ""


def test_derived_durations_use_given_clock() -> None:
    claims = extract_claims(build_token(build_claims(now=1_000, expires_in=600)))
    now = datetime.fromtimestamp(1_100, tz=UTC)

    assert claims.seconds_until_expiry(now) == 500
    assert claims.seconds_since_issued(now) == 100
