"""Issuing short-lived provider access tokens for client-side messaging."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import jwt

from teenlancer_sync.core.settings import settings
from teenlancer_sync.services.errors import ValidationError
from teenlancer_sync.services.provider import ProviderUnavailable

logger = logging.getLogger(__name__)

ACCESS_TOKEN_CONTENT_TYPE = "twilio-fpa;v=1"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    identity: str
    service_scope: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenIssuerConfig:
    account_sid: str | None
    api_key_sid: str | None
    api_key_secret: str | None
    service_sid: str | None
    ttl_seconds: int

    @property
    def configured(self) -> bool:
        return bool(
            self.account_sid and self.api_key_sid and self.api_key_secret and self.service_sid
        )


def load_token_config() -> TokenIssuerConfig:
    return TokenIssuerConfig(
        account_sid=settings.provider_account_sid,
        api_key_sid=settings.provider_api_key_sid,
        api_key_secret=settings.provider_api_key_secret,
        service_sid=settings.provider_service_sid,
        ttl_seconds=max(1, settings.provider_token_ttl_seconds),
    )


class ProviderTokenIssuer:
    """Signs provider access tokens scoped to one identity and one service.

    The token is stateless: nothing is persisted and there is no revocation
    beyond expiry.
    """

    def __init__(self, config: TokenIssuerConfig | None = None) -> None:
        self.config = config or load_token_config()

    def issue_token(self, user_id: str, now: datetime | None = None) -> IssuedToken:
        """Issue a token letting ``user_id`` talk to the provider directly.

        Raises:
            ValidationError: If ``user_id`` is empty.
            ProviderUnavailable: If the provider API key credentials are missing.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        if not self.config.configured:
            raise ProviderUnavailable("Provider API key credentials are not configured")

        issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
        expires_at = issued_at + timedelta(seconds=self.config.ttl_seconds)
        iat = int(issued_at.timestamp())

        claims = {
            "jti": f"{self.config.api_key_sid}-{iat}-{secrets.token_hex(4)}",
            "iss": self.config.api_key_sid,
            "sub": self.config.account_sid,
            "iat": iat,
            "nbf": iat,
            "exp": int(expires_at.timestamp()),
            "grants": {
                "identity": user_id,
                "chat": {"service_sid": self.config.service_sid},
            },
        }
        token = jwt.encode(
            claims,
            self.config.api_key_secret,
            algorithm="HS256",
            headers={"cty": ACCESS_TOKEN_CONTENT_TYPE},
        )
        logger.debug("Issued provider token for %s expiring at %s", user_id, expires_at)
        return IssuedToken(
            token=token,
            identity=user_id,
            service_scope=self.config.service_sid or "",
            expires_at=expires_at,
        )
