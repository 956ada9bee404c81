# src/teenlancer_sync/models/__init__.py
"""SQLAlchemy models for the message sync service."""

from .conversation import ConversationMapping
from .directory import Job, UserProfile
from .message import Message
from .tombstone import MessageTombstone

__all__ = [
    "ConversationMapping",
    "Job", "UserProfile",
    "Message",
    "MessageTombstone",
]
