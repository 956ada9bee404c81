"""Conversation-related Pydantic schemas."""

from pydantic import Field

from .common import CamelModel
from .message import MessageResponse


class ResolveRequest(CamelModel):
    """Schema for resolving a job conversation to a provider handle."""

    job_id: str = Field(..., description="Job the conversation is about")
    participant_a: str = Field(..., description="One participant's user id")
    participant_b: str = Field(..., description="The other participant's user id")


class ResolveResponse(CamelModel):
    external_handle: str
    friendly_name: str


class ReconcileRequest(CamelModel):
    """Schema for a pull reconciliation of one provider conversation."""

    conversation_handle: str = Field(..., description="Provider conversation handle")
    job_id: str = Field(..., description="Job the conversation belongs to")


class ReconcileResponse(CamelModel):
    synced: int
    skipped: int
    total: int
    job_id: str


class ConversationSummaryResponse(CamelModel):
    """Schema for one entry of the caller's conversation list."""

    job_id: str
    job_title: str | None
    other_user_id: str
    other_user_name: str
    other_user_photo: str | None
    last_message: MessageResponse
    unread_count: int


class MarkReadRequest(CamelModel):
    from_user_id: str = Field(..., description="Sender whose messages are marked read")


class MarkReadResponse(CamelModel):
    updated: int
