"""Tests for conversation endpoints."""

from collections.abc import Callable
from unittest.mock import AsyncMock

from fastapi import status
from fastapi.testclient import TestClient

from teenlancer_sync.models import ConversationMapping, Message
from teenlancer_sync.services.provider import ProviderAPIError, ProviderMessage, ProviderUnavailable
from tests.conftest import BASE_TIME, HANDLE, JOB_ID, USER_A, USER_B

Headers = Callable[[str], dict[str, str]]


def _resolve_payload(a: str = USER_A, b: str = USER_B) -> dict[str, str]:
    return {"jobId": JOB_ID, "participantA": a, "participantB": b}


def test_resolve_returns_handle_and_name(client: TestClient, auth_headers: Headers) -> None:
    r = client.post(
        "/api/v1/conversations/resolve",
        json=_resolve_payload(USER_B, USER_A),
        headers=auth_headers(USER_A),
    )

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {
        "externalHandle": HANDLE,
        "friendlyName": f"gig-{JOB_ID}-{USER_A}-{USER_B}",
    }


def test_resolve_requires_participant_caller(client: TestClient, auth_headers: Headers) -> None:
    r = client.post(
        "/api/v1/conversations/resolve",
        json=_resolve_payload(),
        headers=auth_headers("user-c"),
    )
    assert r.status_code == status.HTTP_403_FORBIDDEN


def test_resolve_requires_authentication(client: TestClient) -> None:
    r = client.post("/api/v1/conversations/resolve", json=_resolve_payload())
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_resolve_rejects_invalid_token(client: TestClient) -> None:
    r = client.post(
        "/api/v1/conversations/resolve",
        json=_resolve_payload(),
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_resolve_validation_errors(client: TestClient, auth_headers: Headers) -> None:
    same = client.post(
        "/api/v1/conversations/resolve",
        json=_resolve_payload(USER_A, USER_A),
        headers=auth_headers(USER_A),
    )
    missing = client.post(
        "/api/v1/conversations/resolve",
        json={"jobId": JOB_ID, "participantA": USER_A},
        headers=auth_headers(USER_A),
    )

    assert same.status_code == status.HTTP_400_BAD_REQUEST
    assert missing.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_resolve_maps_provider_failures(
    client: TestClient, auth_headers: Headers, mock_provider_client: AsyncMock
) -> None:
    mock_provider_client.fetch_conversation.side_effect = ProviderUnavailable("timeout")
    unavailable = client.post(
        "/api/v1/conversations/resolve", json=_resolve_payload(), headers=auth_headers(USER_A)
    )

    mock_provider_client.fetch_conversation.side_effect = ProviderAPIError("bad request", 400)
    rejected = client.post(
        "/api/v1/conversations/resolve", json=_resolve_payload(), headers=auth_headers(USER_A)
    )

    assert unavailable.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert rejected.status_code == status.HTTP_502_BAD_GATEWAY


def test_reconcile_reports_counts(
    client: TestClient,
    auth_headers: Headers,
    mock_provider_client: AsyncMock,
    mapping: ConversationMapping,
) -> None:
    mock_provider_client.list_messages.return_value = [
        ProviderMessage(
            external_message_id="IM0001",
            author_id=USER_A,
            body="hi",
            sequence_index=0,
            provider_timestamp=BASE_TIME,
        )
    ]

    payload = {"conversationHandle": HANDLE, "jobId": JOB_ID}
    first = client.post(
        "/api/v1/conversations/reconcile", json=payload, headers=auth_headers(USER_A)
    )
    second = client.post(
        "/api/v1/conversations/reconcile", json=payload, headers=auth_headers(USER_A)
    )

    assert first.json() == {"synced": 1, "skipped": 0, "total": 1, "jobId": JOB_ID}
    assert second.json() == {"synced": 0, "skipped": 1, "total": 1, "jobId": JOB_ID}


def test_reconcile_unknown_conversation_is_404(client: TestClient, auth_headers: Headers) -> None:
    r = client.post(
        "/api/v1/conversations/reconcile",
        json={"conversationHandle": "CH_UNKNOWN", "jobId": JOB_ID},
        headers=auth_headers(USER_A),
    )
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_reconcile_provider_outage_is_503(
    client: TestClient,
    auth_headers: Headers,
    mock_provider_client: AsyncMock,
    mapping: ConversationMapping,
) -> None:
    mock_provider_client.list_messages.side_effect = ProviderUnavailable("down")
    r = client.post(
        "/api/v1/conversations/reconcile",
        json={"conversationHandle": HANDLE, "jobId": JOB_ID},
        headers=auth_headers(USER_A),
    )
    assert r.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_list_conversations_and_mark_read(
    client: TestClient, auth_headers: Headers, make_message: Callable[..., Message]
) -> None:
    make_message(sender_id=USER_B, recipient_id=USER_A, content="first", minutes=1)
    make_message(sender_id=USER_B, recipient_id=USER_A, content="second", minutes=2)

    r = client.get("/api/v1/conversations", headers=auth_headers(USER_A))
    assert r.status_code == status.HTTP_200_OK
    [summary] = r.json()
    assert summary["jobId"] == JOB_ID
    assert summary["otherUserId"] == USER_B
    assert summary["otherUserName"] == "Unknown"
    assert summary["unreadCount"] == 2
    assert summary["lastMessage"]["content"] == "second"

    r = client.post(
        f"/api/v1/conversations/{JOB_ID}/read",
        json={"fromUserId": USER_B},
        headers=auth_headers(USER_A),
    )
    assert r.json() == {"updated": 2}

    [summary] = client.get("/api/v1/conversations", headers=auth_headers(USER_A)).json()
    assert summary["unreadCount"] == 0


def test_thread_messages_and_local_write(
    client: TestClient, auth_headers: Headers, make_message: Callable[..., Message]
) -> None:
    make_message(sender_id=USER_B, recipient_id=USER_A, content="from provider")

    r = client.post(
        f"/api/v1/conversations/{JOB_ID}/messages",
        json={"recipientId": USER_B, "content": "written locally"},
        headers=auth_headers(USER_A),
    )
    assert r.status_code == status.HTTP_201_CREATED
    created = r.json()
    assert created["senderId"] == USER_A
    assert created["externalMessageId"] is None

    r = client.get(
        f"/api/v1/conversations/{JOB_ID}/messages",
        params={"withUser": USER_B},
        headers=auth_headers(USER_A),
    )
    assert [m["content"] for m in r.json()] == ["from provider", "written locally"]
