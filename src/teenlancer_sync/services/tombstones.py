"""Permanent suppression of locally deleted provider messages."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teenlancer_sync.models import MessageTombstone

logger = logging.getLogger(__name__)


class TombstoneStore:
    """Durable set of external message ids that must never be re-ingested.

    A tombstone is one-way: there is no removal and no expiry, so a later pull
    reconciliation cannot resurrect a message the provider still holds.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def is_tombstoned(self, external_message_id: str) -> bool:
        """Return True if ``external_message_id`` has been deleted locally."""
        stmt = select(MessageTombstone.external_message_id).where(
            MessageTombstone.external_message_id == external_message_id
        )
        return self.db.execute(stmt).first() is not None

    def tombstone(self, external_message_id: str, deleted_by: str | None = None) -> bool:
        """Record a tombstone without committing.

        Returns:
            True if a new tombstone was written, False if one already existed.
        """
        if self.is_tombstoned(external_message_id):
            return False

        try:
            with self.db.begin_nested():
                self.db.add(
                    MessageTombstone(
                        external_message_id=external_message_id,
                        deleted_by=deleted_by,
                    )
                )
        except IntegrityError:
            # A concurrent deletion of the same message won the insert.
            logger.debug("Tombstone for %s already recorded", external_message_id)
            return False

        logger.info("Tombstoned provider message %s", external_message_id)
        return True
