# src/teenlancer_sync/models/directory.py
"""Read-only views of jobs and user profiles owned by the marketplace app."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from teenlancer_sync.db.session import Base


class Job(Base):
    """Job posting; only the title is read by this service."""

    __tablename__ = "job"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)


class UserProfile(Base):
    """Public profile fields shown next to a conversation."""

    __tablename__ = "user_profile"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
