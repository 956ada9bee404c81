"""Provider webhook payload schemas.

The provider posts form-encoded bodies with PascalCase field names. Every
request decodes into exactly one of ``MessageEvent``, ``IgnoredEvent`` or
``UnrecognizedPayload``; only a message event with missing fields is an error.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from teenlancer_sync.db.time import utcnow
from teenlancer_sync.services.provider import parse_provider_timestamp

MESSAGE_EVENT_TYPES = frozenset({"onMessageAdded", "onMessageUpdated"})


class WebhookValidationError(ValueError):
    """Raised when a message event lacks required fields."""


class MessageEvent(BaseModel):
    """A message added or updated on a provider conversation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_type: str = Field(..., alias="EventType")
    message_sid: str = Field(..., alias="MessageSid", min_length=1)
    conversation_sid: str = Field(..., alias="ConversationSid", min_length=1)
    author: str = Field(..., alias="Author", min_length=1)
    body: str = Field(..., alias="Body", min_length=1)
    index: int | None = Field(default=None, alias="Index")
    date_created: datetime = Field(default_factory=utcnow, alias="DateCreated")

    @field_validator("index", mode="before")
    @classmethod
    def _blank_index(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("date_created", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        if value is None or value == "":
            return utcnow()
        if isinstance(value, str):
            return parse_provider_timestamp(value)
        return value


class IgnoredEvent(BaseModel):
    """A recognized provider event this service does not act on."""

    event_type: str


class UnrecognizedPayload(BaseModel):
    """A body that could not be interpreted as a provider event."""

    reason: str


WebhookEvent = MessageEvent | IgnoredEvent | UnrecognizedPayload


def decode_form(raw: bytes) -> list[tuple[str, str]]:
    """Decode a form-encoded body into ordered key/value pairs."""
    return parse_qsl(raw.decode("utf-8", errors="replace"), keep_blank_values=True)


def _decode_fields(content_type: str, raw: bytes) -> Mapping[str, Any] | None:
    if "application/json" in content_type:
        try:
            payload = json.loads(raw or b"null")
        except ValueError:
            return None
        return payload if isinstance(payload, Mapping) else None
    return dict(decode_form(raw))


def parse_webhook(content_type: str, raw: bytes) -> WebhookEvent:
    """Interpret a raw webhook body.

    Raises:
        WebhookValidationError: If a message event is missing required fields.
    """
    fields = _decode_fields(content_type.lower(), raw)
    if fields is None:
        return UnrecognizedPayload(reason="body is neither form data nor a JSON object")

    event_type = fields.get("EventType")
    if not event_type:
        return UnrecognizedPayload(reason="missing EventType")
    if not isinstance(event_type, str):
        return UnrecognizedPayload(reason="EventType is not a string")
    if event_type not in MESSAGE_EVENT_TYPES:
        return IgnoredEvent(event_type=event_type)

    try:
        return MessageEvent.model_validate(fields)
    except PydanticValidationError as exc:
        missing = sorted(
            {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
        )
        raise WebhookValidationError(
            f"Invalid {event_type} event: {', '.join(missing) or 'malformed fields'}"
        ) from exc
