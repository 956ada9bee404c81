"""Domain errors raised by the message synchronization services."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for synchronization-engine failures."""


class ValidationError(SyncError):
    """Raised for malformed input; never retried."""


class ConversationNotFoundError(SyncError):
    """Raised when a conversation handle has no local mapping."""

    def __init__(self, conversation_handle: str) -> None:
        super().__init__(f"No conversation mapping for handle {conversation_handle!r}")
        self.conversation_handle = conversation_handle


class MessageNotFoundError(SyncError):
    """Raised when a local message does not exist or is not visible to the caller."""


class OrphanEventError(SyncError):
    """Raised for an event that references an unknown conversation or author.

    Orphans are logged and dropped by the ingestion pipeline, never invented.
    """

    def __init__(self, reason: str, detail: str) -> None:
        super().__init__(detail)
        self.reason = reason
