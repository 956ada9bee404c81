"""Tests for decoding provider webhook bodies."""

import json
from datetime import UTC, datetime
from urllib.parse import urlencode

import pytest

from teenlancer_sync.schemas.webhook import (
    IgnoredEvent,
    MessageEvent,
    UnrecognizedPayload,
    WebhookValidationError,
    parse_webhook,
)

FORM = "application/x-www-form-urlencoded"


def _form(**fields: str) -> bytes:
    return urlencode(fields).encode()


def test_message_added_form_is_a_message_event() -> None:
    event = parse_webhook(
        FORM,
        _form(
            EventType="onMessageAdded",
            MessageSid="IM0001",
            ConversationSid="CH0001",
            Author="user-a",
            Body="hi there",
            Index="4",
            DateCreated="2026-05-01T12:00:00Z",
        ),
    )

    assert isinstance(event, MessageEvent)
    assert event.message_sid == "IM0001"
    assert event.conversation_sid == "CH0001"
    assert event.author == "user-a"
    assert event.body == "hi there"
    assert event.index == 4
    assert event.date_created == datetime(2026, 5, 1, 12, 0, tzinfo=UTC)


def test_message_updated_json_is_a_message_event() -> None:
    body = json.dumps(
        {
            "EventType": "onMessageUpdated",
            "MessageSid": "IM0001",
            "ConversationSid": "CH0001",
            "Author": "user-a",
            "Body": "hi",
        }
    ).encode()

    event = parse_webhook("application/json; charset=utf-8", body)

    assert isinstance(event, MessageEvent)
    assert event.index is None
    assert event.date_created.tzinfo is not None


@pytest.mark.parametrize("missing", ["MessageSid", "ConversationSid", "Author", "Body"])
def test_message_event_missing_required_field_is_rejected(missing: str) -> None:
    fields = {
        "EventType": "onMessageAdded",
        "MessageSid": "IM0001",
        "ConversationSid": "CH0001",
        "Author": "user-a",
        "Body": "hi",
    }
    del fields[missing]

    with pytest.raises(WebhookValidationError) as exc_info:
        parse_webhook(FORM, _form(**fields))
    assert missing in str(exc_info.value)


def test_other_event_types_are_ignored() -> None:
    event = parse_webhook(FORM, _form(EventType="onTypingStarted", ConversationSid="CH0001"))

    assert isinstance(event, IgnoredEvent)
    assert event.event_type == "onTypingStarted"


@pytest.mark.parametrize(
    ("content_type", "body"),
    [
        ("application/json", b"not json"),
        ("application/json", b"[1, 2]"),
        (FORM, b""),
        ("text/plain", b"hello"),
    ],
)
def test_unrecognized_bodies_are_reported_not_raised(content_type: str, body: bytes) -> None:
    assert isinstance(parse_webhook(content_type, body), UnrecognizedPayload)


@pytest.mark.parametrize("event_type", [["onMessageAdded"], {"type": "onMessageAdded"}, 7])
def test_non_string_event_type_is_unrecognized(event_type: object) -> None:
    body = json.dumps({"EventType": event_type, "MessageSid": "IM0001"}).encode()

    event = parse_webhook("application/json", body)

    assert isinstance(event, UnrecognizedPayload)
    assert event.reason == "EventType is not a string"
