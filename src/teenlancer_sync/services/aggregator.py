"""Per-user conversation summaries derived from the local message store."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from teenlancer_sync.db.time import as_utc
from teenlancer_sync.models import Job, Message, UserProfile

UNKNOWN_USER_NAME = "Unknown"


@dataclass(frozen=True)
class ConversationSummary:
    """Derived view of one ``(job, other participant)`` thread for a user."""

    job_id: str
    job_title: str | None
    other_user_id: str
    other_user_name: str
    other_user_photo: str | None
    last_message: Message
    unread_count: int


def _recency_key(message: Message) -> tuple:
    sequence = message.sequence_index if message.sequence_index is not None else -1
    return (as_utc(message.provider_timestamp), sequence, message.local_id)


class ConversationAggregator:
    """Builds conversation summaries without ever consulting the provider."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def summaries_for(self, user_id: str) -> list[ConversationSummary]:
        """Return the user's conversations, most recently active first."""
        stmt = select(Message).where(
            or_(Message.sender_id == user_id, Message.recipient_id == user_id)
        )
        messages = self.db.execute(stmt).scalars().all()

        groups: dict[tuple[str, str], list[Message]] = {}
        for message in messages:
            other = message.recipient_id if message.sender_id == user_id else message.sender_id
            groups.setdefault((message.job_id, other), []).append(message)

        if not groups:
            return []

        titles = self._job_titles(job_id for job_id, _ in groups)
        profiles = self._profiles(other for _, other in groups)

        summaries = []
        for (job_id, other), rows in groups.items():
            last = max(rows, key=_recency_key)
            unread = sum(1 for row in rows if row.recipient_id == user_id and not row.read_flag)
            profile = profiles.get(other)
            summaries.append(
                ConversationSummary(
                    job_id=job_id,
                    job_title=titles.get(job_id),
                    other_user_id=other,
                    other_user_name=(profile.full_name if profile and profile.full_name
                                     else UNKNOWN_USER_NAME),
                    other_user_photo=profile.photo_url if profile else None,
                    last_message=last,
                    unread_count=unread,
                )
            )

        summaries.sort(key=lambda summary: _recency_key(summary.last_message), reverse=True)
        return summaries

    def _job_titles(self, job_ids: Iterable[str]) -> dict[str, str]:
        stmt = select(Job.id, Job.title).where(Job.id.in_(set(job_ids)))
        return {job_id: title for job_id, title in self.db.execute(stmt).all()}

    def _profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        stmt = select(UserProfile).where(UserProfile.id.in_(set(user_ids)))
        return {profile.id: profile for profile in self.db.execute(stmt).scalars().all()}
