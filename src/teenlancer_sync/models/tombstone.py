# src/teenlancer_sync/models/tombstone.py
"""Model for permanently suppressed provider message ids."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from teenlancer_sync.db.session import Base
from teenlancer_sync.db.time import utcnow


class MessageTombstone(Base):
    """Record indicating that a provider message must never be materialized again."""

    __tablename__ = "message_tombstone"

    # Existence means "deleted locally"; rows never expire.
    external_message_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    deleted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    deleted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
