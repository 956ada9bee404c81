"""Message-related Pydantic schemas."""

from datetime import datetime

from pydantic import ConfigDict, Field

from .common import CamelModel


class LocalMessageCreate(CamelModel):
    """Schema for writing a message directly to the local store."""

    recipient_id: str = Field(..., description="User id of the recipient")
    content: str = Field(..., min_length=1, description="Message text")


class MessageResponse(CamelModel):
    """Schema for message information returned by the API."""

    local_id: int
    job_id: str
    sender_id: str
    recipient_id: str
    content: str
    external_message_id: str | None
    sequence_index: int | None
    provider_timestamp: datetime
    read_flag: bool

    model_config = ConfigDict(from_attributes=True)
