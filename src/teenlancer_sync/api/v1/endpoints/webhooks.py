"""Push ingestion endpoint for provider webhooks.

The provider retries any non-2xx response, so every structurally valid
delivery is acknowledged with 200 and local failures are only logged. The
periodic or manual pull reconciliation repairs whatever was lost.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Header, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from teenlancer_sync.core.security import verify_webhook_signature
from teenlancer_sync.core.settings import settings
from teenlancer_sync.schemas.webhook import (
    IgnoredEvent,
    MessageEvent,
    UnrecognizedPayload,
    WebhookValidationError,
    decode_form,
    parse_webhook,
)
from teenlancer_sync.services.ingestion import MessageIngestionPipeline

from ..dependencies import ProviderClientDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _check_signature(request: Request, raw: bytes, signature: str | None) -> None:
    if not settings.provider_webhook_validate:
        return

    auth_token = settings.provider_auth_token
    url = settings.provider_webhook_url or str(request.url)
    if not auth_token or not signature or not verify_webhook_signature(
        auth_token, url, decode_form(raw), signature
    ):
        logger.warning("Rejected provider webhook with invalid signature")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid webhook signature",
        )


@router.post("/provider")
async def receive_provider_webhook(
    request: Request,
    db: SessionDep,
    client: ProviderClientDep,
    x_twilio_signature: str | None = Header(default=None),
) -> dict[str, Any]:
    """Ingest a message pushed by the provider."""
    raw = await request.body()
    _check_signature(request, raw, x_twilio_signature)

    try:
        event = parse_webhook(request.headers.get("content-type", ""), raw)
    except WebhookValidationError as exc:
        logger.warning("Rejected provider webhook: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if isinstance(event, UnrecognizedPayload):
        logger.info("Acknowledged unrecognized webhook payload: %s", event.reason)
        return {"status": "ignored", "reason": event.reason}
    if isinstance(event, IgnoredEvent):
        logger.debug("Ignoring provider event %s", event.event_type)
        return {"status": "ignored", "eventType": event.event_type}

    return _ingest_event(MessageIngestionPipeline(db, client), event)


def _ingest_event(pipeline: MessageIngestionPipeline, event: MessageEvent) -> dict[str, Any]:
    try:
        result = pipeline.ingest(
            event.message_sid,
            event.conversation_sid,
            event.author,
            event.body,
            event.date_created,
            event.index,
        )
    except SQLAlchemyError as exc:
        pipeline.db.rollback()
        logger.error(
            "Failed to store provider message %s: %s", event.message_sid, exc, exc_info=True
        )
        return {"status": "error", "messageSid": event.message_sid}

    body: dict[str, Any] = {
        "status": result.outcome.value,
        "messageSid": event.message_sid,
    }
    if result.reason:
        body["reason"] = result.reason
    if result.local_id is not None:
        body["localId"] = result.local_id
    return body
