"""Tests for provider access-token issuing."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from teenlancer_sync.services.errors import ValidationError
from teenlancer_sync.services.provider import ProviderUnavailable
from teenlancer_sync.services.tokens import ProviderTokenIssuer, TokenIssuerConfig

SECRET = "api-key-secret"


def _issuer(**overrides: object) -> ProviderTokenIssuer:
    values: dict[str, object] = {
        "account_sid": "AC0001",
        "api_key_sid": "SK0001",
        "api_key_secret": SECRET,
        "service_sid": "IS0001",
        "ttl_seconds": 3600,
    }
    values.update(overrides)
    return ProviderTokenIssuer(TokenIssuerConfig(**values))  # type: ignore[arg-type]


def test_issue_token_scopes_identity_and_service() -> None:
    issued = _issuer().issue_token("user-a")

    claims = jwt.decode(issued.token, SECRET, algorithms=["HS256"])
    assert claims["iss"] == "SK0001"
    assert claims["sub"] == "AC0001"
    assert claims["grants"] == {"identity": "user-a", "chat": {"service_sid": "IS0001"}}
    assert claims["jti"].startswith("SK0001-")
    assert claims["exp"] - claims["iat"] == 3600
    assert jwt.get_unverified_header(issued.token)["cty"] == "twilio-fpa;v=1"

    assert issued.identity == "user-a"
    assert issued.service_scope == "IS0001"


def test_issue_token_expiry_follows_ttl() -> None:
    now = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)

    issued = _issuer(ttl_seconds=600).issue_token("user-a", now=now)

    assert issued.expires_at == now + timedelta(seconds=600)
    claims = jwt.get_unverified_claims(issued.token)
    assert claims["nbf"] == claims["iat"] == int(now.timestamp())


def test_tokens_are_unique_per_issue() -> None:
    issuer = _issuer()
    assert issuer.issue_token("user-a").token != issuer.issue_token("user-a").token


def test_missing_credentials_make_provider_unavailable() -> None:
    with pytest.raises(ProviderUnavailable):
        _issuer(api_key_secret=None).issue_token("user-a")


def test_empty_identity_is_rejected() -> None:
    with pytest.raises(ValidationError):
        _issuer().issue_token("")
