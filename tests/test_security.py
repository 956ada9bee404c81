from jose import jwt

from teenlancer_sync.core.security import (
    compute_webhook_signature,
    create_access_token,
    verify_webhook_signature,
)
from teenlancer_sync.core.settings import settings

URL = "https://sync.example.com/api/v1/webhooks/provider"
PARAMS = [("MessageSid", "IM0001"), ("Body", "hi"), ("Author", "user-a")]


def test_access_token_carries_subject() -> None:
    token = create_access_token("user-a")
    claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    assert claims["sub"] == "user-a"
    assert "exp" in claims


def test_webhook_signature_round_trip() -> None:
    signature = compute_webhook_signature("token", URL, PARAMS)
    assert verify_webhook_signature("token", URL, list(reversed(PARAMS)), signature)


def test_webhook_signature_rejects_tampering() -> None:
    signature = compute_webhook_signature("token", URL, PARAMS)
    tampered = [("MessageSid", "IM0001"), ("Body", "bye"), ("Author", "user-a")]
    assert not verify_webhook_signature("token", URL, tampered, signature)
    assert not verify_webhook_signature("other", URL, PARAMS, signature)
