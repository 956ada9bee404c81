# src/teenlancer_sync/models/conversation.py
"""Model linking a job and a participant pair to a provider conversation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from teenlancer_sync.db.session import Base
from teenlancer_sync.db.time import utcnow


class ConversationMapping(Base):
    """Stable link between a job, its two participants and a provider handle.

    Participants are stored in canonical sort order so that ``(A, B)`` and
    ``(B, A)`` share one row. Rows are never deleted.
    """

    __tablename__ = "conversation_mapping"
    __table_args__ = (
        UniqueConstraint(
            "job_id",
            "participant_low",
            "participant_high",
            name="uq_conversation_mapping_job_pair",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    participant_low: Mapped[str] = mapped_column(String(64), nullable=False)
    participant_high: Mapped[str] = mapped_column(String(64), nullable=False)
    # Immutable once assigned.
    external_handle: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def participants(self) -> tuple[str, str]:
        """Return the canonical ``(low, high)`` participant pair."""
        return (self.participant_low, self.participant_high)
