"""Access-token and webhook signature helpers."""
from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from jose import jwt

from teenlancer_sync.core.settings import settings


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token identifying ``subject`` as the caller."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def compute_webhook_signature(
    auth_token: str, url: str, params: Iterable[tuple[str, str]]
) -> str:
    """Compute the provider's webhook signature for a form-encoded request.

    The signed string is the full request URL followed by every POST parameter
    name and value, concatenated in parameter-name order.

    Args:
        auth_token: Provider account auth token used as the HMAC key.
        url: Public URL the provider delivered the webhook to.
        params: Decoded form parameters of the request body.

    Returns:
        Base64-encoded HMAC-SHA1 digest.
    """
    payload = url + "".join(f"{key}{value}" for key, value in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), payload.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(
    auth_token: str, url: str, params: Iterable[tuple[str, str]], signature: str
) -> bool:
    """Return True if ``signature`` matches the expected webhook signature."""
    expected = compute_webhook_signature(auth_token, url, params)
    return hmac.compare_digest(expected, signature)
