"""Idempotent ingestion of provider messages into the local message store.

Both the push path (provider webhooks, at-least-once and unordered) and the
pull path (reconciliation of a conversation's full message list) go through
``MessageIngestionPipeline.ingest``. Idempotency comes from the unique
``message.external_message_id`` column rather than from remembered offsets,
so the two paths can interleave arbitrarily.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teenlancer_sync.db.time import as_utc
from teenlancer_sync.models import ConversationMapping, Message
from teenlancer_sync.services.errors import ConversationNotFoundError, OrphanEventError
from teenlancer_sync.services.provider import (
    MalformedProviderMessage,
    ProviderClient,
    get_provider_client,
)
from teenlancer_sync.services.tombstones import TombstoneStore

logger = logging.getLogger(__name__)

REASON_TOMBSTONED = "tombstoned"
REASON_DUPLICATE = "duplicate"
REASON_ORPHAN_CONVERSATION = "orphan_conversation"
REASON_UNKNOWN_AUTHOR = "unknown_author"


class IngestOutcome(str, enum.Enum):
    """Terminal outcome of ingesting one provider message."""

    INSERTED = "inserted"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class IngestResult:
    """Result of a single ingestion attempt."""

    outcome: IngestOutcome
    reason: str | None = None
    local_id: int | None = None

    @property
    def inserted(self) -> bool:
        return self.outcome is IngestOutcome.INSERTED

    @classmethod
    def skipped(cls, reason: str) -> IngestResult:
        return cls(outcome=IngestOutcome.SKIPPED, reason=reason)


@dataclass(frozen=True)
class ReconcileResult:
    """Aggregate counts of a pull reconciliation."""

    job_id: str
    synced: int
    skipped: int
    total: int


def counterpart(mapping: ConversationMapping, author_id: str) -> str:
    """Return the participant of ``mapping`` who is not ``author_id``.

    Raises:
        OrphanEventError: If ``author_id`` is neither stored participant.
    """
    if author_id == mapping.participant_low:
        return mapping.participant_high
    if author_id == mapping.participant_high:
        return mapping.participant_low
    raise OrphanEventError(
        REASON_UNKNOWN_AUTHOR,
        f"Author {author_id!r} is not a participant of conversation {mapping.external_handle}",
    )


class _TombstonedDuringInsert(Exception):
    """Rolls back the insert savepoint when a tombstone appears mid-ingest."""


class MessageIngestionPipeline:
    """Upserts provider messages, honouring tombstones and conversation mappings."""

    def __init__(self, db: Session, client: ProviderClient | None = None) -> None:
        self.db = db
        self._client = client
        self.tombstones = TombstoneStore(db)

    @property
    def client(self) -> ProviderClient:
        if self._client is None:
            self._client = get_provider_client()
        return self._client

    def _find_mapping(self, conversation_handle: str) -> ConversationMapping | None:
        stmt = select(ConversationMapping).where(
            ConversationMapping.external_handle == conversation_handle
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _message_exists(self, external_message_id: str) -> bool:
        stmt = select(Message.local_id).where(Message.external_message_id == external_message_id)
        return self.db.execute(stmt).first() is not None

    def ingest(
        self,
        external_message_id: str,
        conversation_handle: str,
        author_id: str,
        body: str,
        provider_timestamp: datetime,
        sequence_index: int | None = None,
    ) -> IngestResult:
        """Ingest one provider message and commit it.

        Duplicates, tombstoned ids, unknown conversations and unknown authors
        are reported as skipped; none of them raise.
        """
        if self.tombstones.is_tombstoned(external_message_id):
            logger.debug("Skipping tombstoned message %s", external_message_id)
            return IngestResult.skipped(REASON_TOMBSTONED)

        if self._message_exists(external_message_id):
            logger.debug("Skipping already ingested message %s", external_message_id)
            return IngestResult.skipped(REASON_DUPLICATE)

        mapping = self._find_mapping(conversation_handle)
        if mapping is None:
            logger.warning(
                "Dropping message %s for unknown conversation %s",
                external_message_id,
                conversation_handle,
            )
            return IngestResult.skipped(REASON_ORPHAN_CONVERSATION)

        try:
            recipient_id = counterpart(mapping, author_id)
        except OrphanEventError as exc:
            logger.warning("Dropping message %s: %s", external_message_id, exc)
            return IngestResult.skipped(exc.reason)

        message = Message(
            job_id=mapping.job_id,
            sender_id=author_id,
            recipient_id=recipient_id,
            content=body,
            external_message_id=external_message_id,
            sequence_index=sequence_index,
            provider_timestamp=as_utc(provider_timestamp),
            read_flag=False,
        )

        try:
            with self.db.begin_nested():
                self.db.add(message)
                self.db.flush()
                # A deletion may have committed since the first check.
                if self.tombstones.is_tombstoned(external_message_id):
                    raise _TombstonedDuringInsert(external_message_id)
        except IntegrityError:
            # A concurrent push or pull inserted the same provider id first.
            logger.debug("Concurrent insert of message %s detected", external_message_id)
            return IngestResult.skipped(REASON_DUPLICATE)
        except _TombstonedDuringInsert:
            logger.debug("Message %s was tombstoned during ingestion", external_message_id)
            return IngestResult.skipped(REASON_TOMBSTONED)

        self.db.commit()
        logger.info(
            "Ingested message %s into job %s (%s -> %s)",
            external_message_id,
            mapping.job_id,
            author_id,
            recipient_id,
        )
        return IngestResult(outcome=IngestOutcome.INSERTED, local_id=message.local_id)

    async def reconcile(self, conversation_handle: str, job_id: str) -> ReconcileResult:
        """Fetch every provider message of a conversation and ingest each one.

        ``total`` counts every listed record; malformed ones are counted as skipped.

        Raises:
            ConversationNotFoundError: If the handle has no local mapping.
            ProviderError: If listing the provider's messages fails.
        """
        mapping = self._find_mapping(conversation_handle)
        if mapping is None:
            raise ConversationNotFoundError(conversation_handle)
        if mapping.job_id != job_id:
            logger.warning(
                "Reconcile for %s requested job %s but mapping belongs to job %s",
                conversation_handle,
                job_id,
                mapping.job_id,
            )

        records = await self.client.list_messages(conversation_handle)

        synced = 0
        skipped = 0
        for record in records:
            if isinstance(record, MalformedProviderMessage):
                logger.warning(
                    "Skipping malformed record %s in %s: %s",
                    record.external_message_id,
                    conversation_handle,
                    record.reason,
                )
                skipped += 1
                continue
            result = self.ingest(
                record.external_message_id,
                conversation_handle,
                record.author_id,
                record.body,
                record.provider_timestamp,
                record.sequence_index,
            )
            if result.inserted:
                synced += 1
            else:
                skipped += 1

        logger.info(
            "Reconciled %s: %d synced, %d skipped, %d total",
            conversation_handle,
            synced,
            skipped,
            len(records),
        )
        return ReconcileResult(
            job_id=mapping.job_id, synced=synced, skipped=skipped, total=len(records)
        )
