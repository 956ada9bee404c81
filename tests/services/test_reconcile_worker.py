"""Tests for the periodic reconciliation worker."""

import asyncio
from collections.abc import Iterator
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from teenlancer_sync.core.settings import settings
from teenlancer_sync.models import ConversationMapping, Message
from teenlancer_sync.services.provider import ProviderAPIError, ProviderMessage
from teenlancer_sync.services.reconcile import ReconciliationWorker
from tests.conftest import BASE_TIME, HANDLE, USER_A


@pytest.fixture
def reconcile_settings() -> Iterator[None]:
    original = (settings.reconcile_interval_seconds, settings.reconcile_batch_size)
    settings.reconcile_interval_seconds = 0.05
    settings.reconcile_batch_size = 1
    try:
        yield
    finally:
        settings.reconcile_interval_seconds, settings.reconcile_batch_size = original


def _listed(sid: str) -> list[ProviderMessage]:
    return [
        ProviderMessage(
            external_message_id=sid,
            author_id=USER_A,
            body="missed",
            sequence_index=0,
            provider_timestamp=BASE_TIME,
        )
    ]


@pytest.mark.asyncio
async def test_sweep_reconciles_newest_mappings_first(
    db_session: Session,
    mock_provider_client: AsyncMock,
    mapping: ConversationMapping,
    reconcile_settings: None,
) -> None:
    newer = ConversationMapping(
        job_id="job-2",
        participant_low=USER_A,
        participant_high="user-c",
        external_handle="CH0002",
        created_at=mapping.created_at + timedelta(minutes=5),
    )
    db_session.add(newer)
    db_session.flush()
    mock_provider_client.list_messages.return_value = _listed("IM0001")
    worker = ReconciliationWorker(client=mock_provider_client, db_session=db_session)

    results = await worker.sweep_once()

    mock_provider_client.list_messages.assert_awaited_once_with("CH0002")
    assert [(r.job_id, r.synced) for r in results] == [("job-2", 1)]
    row = db_session.execute(select(Message)).scalar_one()
    assert row.recipient_id == "user-c"


@pytest.mark.asyncio
async def test_sweep_is_idempotent(
    db_session: Session,
    mock_provider_client: AsyncMock,
    mapping: ConversationMapping,
    reconcile_settings: None,
) -> None:
    mock_provider_client.list_messages.return_value = _listed("IM0001")
    worker = ReconciliationWorker(client=mock_provider_client, db_session=db_session)

    first = await worker.sweep_once()
    second = await worker.sweep_once()

    assert first[0].synced == 1
    assert (second[0].synced, second[0].skipped) == (0, 1)


@pytest.mark.asyncio
async def test_sweep_continues_past_provider_api_errors(
    db_session: Session,
    mock_provider_client: AsyncMock,
    mapping: ConversationMapping,
    reconcile_settings: None,
) -> None:
    mock_provider_client.list_messages.side_effect = ProviderAPIError("gone", 404)
    worker = ReconciliationWorker(client=mock_provider_client, db_session=db_session)

    assert await worker.sweep_once() == []


@pytest.mark.asyncio
async def test_worker_does_not_start_when_disabled(mock_provider_client: AsyncMock) -> None:
    worker = ReconciliationWorker(client=mock_provider_client)

    await worker.start()  # interval defaults to 0

    assert worker._task is None


@pytest.mark.asyncio
async def test_worker_runs_until_stopped(
    db_session: Session,
    mock_provider_client: AsyncMock,
    mapping: ConversationMapping,
    reconcile_settings: None,
) -> None:
    mock_provider_client.list_messages.return_value = []
    worker = ReconciliationWorker(client=mock_provider_client, db_session=db_session)

    await worker.start()
    await asyncio.sleep(0.2)
    await worker.stop()

    assert worker._task is None
    assert mock_provider_client.list_messages.await_count >= 1
    mock_provider_client.list_messages.assert_awaited_with(HANDLE)
