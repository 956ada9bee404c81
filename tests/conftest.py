# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")

from teenlancer_sync.api.v1.dependencies import get_provider_client_dep
from teenlancer_sync.core.security import create_access_token
from teenlancer_sync.db.session import Base
from teenlancer_sync.db.session import get_db as app_get_session
from teenlancer_sync.main import app as fastapi_app
from teenlancer_sync.models import ConversationMapping, Message
from teenlancer_sync.services.provider import ProviderClient, ProviderConversation

TEST_DB_URL = "sqlite://"

JOB_ID = "job-1"
USER_A = "user-a"
USER_B = "user-b"
HANDLE = "CH0001"

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

_EXTERNAL_ID_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    # Service commits release a savepoint instead of the outer transaction.
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def mock_provider_client() -> AsyncMock:
    """Provider client double that knows no conversations until one is created."""
    client = AsyncMock(spec=ProviderClient)
    client.enabled = True
    client.fetch_conversation.return_value = None
    client.create_conversation.side_effect = lambda name: ProviderConversation(
        handle=HANDLE, unique_name=name, friendly_name=name
    )
    client.add_participant.return_value = True
    client.list_messages.return_value = []
    client.health_check.return_value = {"status": "healthy", "enabled": True}
    client.get_metrics.return_value = {"request_count": 0}
    return client


@pytest.fixture(autouse=True)
def override_provider_dependency(
    app: FastAPI, mock_provider_client: AsyncMock
) -> Iterator[None]:
    app.dependency_overrides[get_provider_client_dep] = lambda: mock_provider_client
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_provider_client_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a factory of authorization headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def mapping(db_session: Session) -> ConversationMapping:
    """Persist the conversation between USER_A and USER_B about JOB_ID."""
    row = ConversationMapping(
        job_id=JOB_ID,
        participant_low=USER_A,
        participant_high=USER_B,
        external_handle=HANDLE,
    )
    db_session.add(row)
    db_session.flush()
    return row


@pytest.fixture()
def make_message(db_session: Session) -> Callable[..., Message]:
    """Return a factory persisting messages with increasing timestamps by default."""

    def _make(
        sender_id: str = USER_A,
        recipient_id: str = USER_B,
        job_id: str = JOB_ID,
        content: str = "hello",
        minutes: int = 0,
        read: bool = False,
        external_message_id: str | None = None,
        sequence_index: int | None = None,
    ) -> Message:
        message = Message(
            job_id=job_id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            external_message_id=(
                external_message_id or f"IM{next(_EXTERNAL_ID_COUNTER):06d}"
            ),
            sequence_index=sequence_index,
            provider_timestamp=BASE_TIME + timedelta(minutes=minutes),
            read_flag=read,
        )
        db_session.add(message)
        db_session.flush()
        return message

    return _make
