"""Local message store operations outside of provider ingestion."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from teenlancer_sync.db.time import as_utc, utcnow
from teenlancer_sync.models import Message
from teenlancer_sync.services.errors import MessageNotFoundError, ValidationError
from teenlancer_sync.services.tombstones import TombstoneStore

logger = logging.getLogger(__name__)


class MessageStore:
    """Reads and local mutations of the ``message`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.tombstones = TombstoneStore(db)

    def append_local(
        self,
        job_id: str,
        sender_id: str,
        recipient_id: str,
        content: str,
        provider_timestamp: datetime | None = None,
    ) -> Message:
        """Write a message directly to the local store.

        The row carries no external id, so it is never matched by provider
        ingestion.
        """
        if not job_id or not sender_id or not recipient_id:
            raise ValidationError("job_id, sender_id and recipient_id are required")
        if sender_id == recipient_id:
            raise ValidationError("Cannot send a message to yourself")
        if not content or not content.strip():
            raise ValidationError("Message content must not be empty")

        message = Message(
            job_id=job_id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            external_message_id=None,
            provider_timestamp=as_utc(provider_timestamp) if provider_timestamp else utcnow(),
            read_flag=False,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        logger.info("Stored local message %s for job %s", message.local_id, job_id)
        return message

    def mark_read(self, job_id: str, from_user_id: str, to_user_id: str) -> int:
        """Mark every unread message from ``from_user_id`` to ``to_user_id`` as read.

        Returns:
            Number of rows flipped; zero on repeated calls.
        """
        stmt = (
            update(Message)
            .where(
                Message.job_id == job_id,
                Message.sender_id == from_user_id,
                Message.recipient_id == to_user_id,
                Message.read_flag.is_(False),
            )
            .values(read_flag=True)
            .execution_options(synchronize_session="fetch")
        )
        result = self.db.execute(stmt)
        self.db.commit()
        updated = int(result.rowcount or 0)
        if updated:
            logger.debug(
                "Marked %d messages read in job %s (%s -> %s)",
                updated,
                job_id,
                from_user_id,
                to_user_id,
            )
        return updated

    def list_for_job(
        self, job_id: str, user_id: str, with_user_id: str | None = None
    ) -> list[Message]:
        """Return the job's messages visible to ``user_id``, oldest first.

        When ``with_user_id`` is given only the thread between the two users
        is returned.
        """
        if with_user_id is None:
            visibility = or_(Message.sender_id == user_id, Message.recipient_id == user_id)
        else:
            visibility = or_(
                and_(Message.sender_id == user_id, Message.recipient_id == with_user_id),
                and_(Message.sender_id == with_user_id, Message.recipient_id == user_id),
            )

        stmt = (
            select(Message)
            .where(Message.job_id == job_id, visibility)
            .order_by(
                Message.provider_timestamp.asc(),
                Message.sequence_index.asc(),
                Message.local_id.asc(),
            )
        )
        return list(self.db.execute(stmt).scalars().all())

    def delete(self, local_id: int, requesting_user_id: str) -> str | None:
        """Delete a message visible to ``requesting_user_id``.

        A message that came from the provider is tombstoned in the same
        transaction, so a later reconciliation cannot bring it back.

        Returns:
            The deleted message's external id, if it had one.

        Raises:
            MessageNotFoundError: If the message does not exist or the caller is
                neither its sender nor its recipient.
        """
        message = self.db.get(Message, local_id)
        if message is None or requesting_user_id not in (message.sender_id, message.recipient_id):
            raise MessageNotFoundError(f"Message {local_id} not found")

        external_message_id = message.external_message_id
        if external_message_id:
            self.tombstones.tombstone(external_message_id, deleted_by=requesting_user_id)
        self.db.delete(message)
        self.db.commit()
        logger.info(
            "Deleted message %s (external id %s) by %s",
            local_id,
            external_message_id,
            requesting_user_id,
        )
        return external_message_id
