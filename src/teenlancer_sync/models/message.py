# src/teenlancer_sync/models/message.py
"""Model describing messages mirrored from the conversation provider."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from teenlancer_sync.db.session import Base
from teenlancer_sync.db.time import utcnow


class Message(Base):
    """A unit of conversation content about a job.

    ``external_message_id`` is the idempotency key for ingestion. It is only
    null for rows written directly to the local store before (or without) a
    provider id.
    """

    __tablename__ = "message"
    __table_args__ = (
        Index("ix_message_job_participants", "job_id", "sender_id", "recipient_id"),
        Index("ix_message_recipient_unread", "recipient_id", "read_flag"),
    )

    local_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    external_message_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True
    )
    sequence_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    provider_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    read_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
