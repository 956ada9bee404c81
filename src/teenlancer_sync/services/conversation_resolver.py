"""Resolution of job conversations to stable provider handles.

A conversation is identified by a job and an unordered pair of participants.
The first resolution creates the conversation on the provider; every later
resolution, by either participant, returns the same handle.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teenlancer_sync.models import ConversationMapping
from teenlancer_sync.services.errors import ValidationError
from teenlancer_sync.services.provider import (
    ConflictError,
    ProviderAPIError,
    ProviderClient,
    ProviderConversation,
    get_provider_client,
)

logger = logging.getLogger(__name__)


def canonical_pair(participant_a: str, participant_b: str) -> tuple[str, str]:
    """Return the participant pair in canonical ``(low, high)`` order."""
    low, high = sorted((participant_a, participant_b))
    return low, high


def conversation_name(job_id: str, participant_a: str, participant_b: str) -> str:
    """Return the deterministic provider name for a job conversation."""
    low, high = canonical_pair(participant_a, participant_b)
    return f"gig-{job_id}-{low}-{high}"


def _validate(job_id: str, participant_a: str, participant_b: str) -> None:
    missing = [
        name
        for name, value in (
            ("job_id", job_id),
            ("participant_a", participant_a),
            ("participant_b", participant_b),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if participant_a == participant_b:
        raise ValidationError("A conversation needs two distinct participants")


class ConversationResolver:
    """Maps ``(job, participant pair)`` keys to provider conversation handles."""

    def __init__(self, db: Session, client: ProviderClient | None = None) -> None:
        self.db = db
        self.client = client or get_provider_client()

    async def resolve(self, job_id: str, participant_a: str, participant_b: str) -> str:
        """Return the provider handle for a job conversation, creating it if needed.

        Raises:
            ValidationError: If a field is missing or both participants are equal.
            ProviderUnavailable: If the provider cannot be reached or is unconfigured.
            ProviderAPIError: If the provider rejects a request.
        """
        _validate(job_id, participant_a, participant_b)
        low, high = canonical_pair(participant_a, participant_b)
        name = conversation_name(job_id, low, high)

        mapping = self._find_mapping(job_id, low, high)
        if mapping is not None:
            await self._register_participants(mapping.external_handle, low, high)
            return mapping.external_handle

        conversation = await self._find_or_create(name)
        await self._register_participants(conversation.handle, low, high)
        handle = self._upsert_mapping(job_id, low, high, conversation.handle)
        if handle != conversation.handle:
            # A racing resolver stored its own conversation first.
            await self._register_participants(handle, low, high)
        return handle

    async def _register_participants(self, handle: str, low: str, high: str) -> None:
        for identity in (low, high):
            added = await self.client.add_participant(handle, identity)
            if added:
                logger.debug("Registered %s on conversation %s", identity, handle)

    async def _find_or_create(self, name: str) -> ProviderConversation:
        existing = await self.client.fetch_conversation(name)
        if existing is not None:
            return existing

        try:
            created = await self.client.create_conversation(name)
        except ConflictError:
            # Another caller created it between our lookup and create.
            logger.info("Conversation %s created concurrently; looking it up", name)
            existing = await self.client.fetch_conversation(name)
            if existing is None:
                raise ProviderAPIError(
                    f"Conversation {name!r} reported as existing but could not be fetched"
                ) from None
            return existing

        logger.info("Created provider conversation %s for %s", created.handle, name)
        return created

    def _find_mapping(self, job_id: str, low: str, high: str) -> ConversationMapping | None:
        stmt = select(ConversationMapping).where(
            ConversationMapping.job_id == job_id,
            ConversationMapping.participant_low == low,
            ConversationMapping.participant_high == high,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _upsert_mapping(self, job_id: str, low: str, high: str, handle: str) -> str:
        """Persist the mapping and return the handle that is stored for the key.

        The stored handle wins over ``handle``: once assigned it never changes,
        so racing resolvers converge on a single row.
        """
        mapping = self._find_mapping(job_id, low, high)
        if mapping is not None:
            if mapping.external_handle != handle:
                logger.warning(
                    "Provider returned %s for %s/%s/%s; keeping stored handle %s",
                    handle,
                    job_id,
                    low,
                    high,
                    mapping.external_handle,
                )
            return mapping.external_handle

        try:
            with self.db.begin_nested():
                self.db.add(
                    ConversationMapping(
                        job_id=job_id,
                        participant_low=low,
                        participant_high=high,
                        external_handle=handle,
                    )
                )
        except IntegrityError:
            mapping = self._find_mapping(job_id, low, high)
            if mapping is None:
                # The handle is already stored under another key; re-key that row.
                stmt = select(ConversationMapping).where(
                    ConversationMapping.external_handle == handle
                )
                mapping = self.db.execute(stmt).scalar_one()
                mapping.job_id = job_id
                mapping.participant_low = low
                mapping.participant_high = high
                self.db.flush()
            self.db.commit()
            return mapping.external_handle

        self.db.commit()
        return handle


def get_conversation_resolver(db: Session) -> ConversationResolver:
    """Return a resolver bound to ``db`` and the shared provider client."""
    return ConversationResolver(db)
