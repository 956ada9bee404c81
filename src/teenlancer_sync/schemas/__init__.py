# src/teenlancer_sync/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .conversation import (
    ConversationSummaryResponse,
    MarkReadRequest,
    MarkReadResponse,
    ReconcileRequest,
    ReconcileResponse,
    ResolveRequest,
    ResolveResponse,
)
from .message import LocalMessageCreate, MessageResponse
from .token import ProviderTokenResponse
from .webhook import IgnoredEvent, MessageEvent, UnrecognizedPayload, WebhookEvent

__all__ = [
    "ConversationSummaryResponse", "MarkReadRequest", "MarkReadResponse",
    "ReconcileRequest", "ReconcileResponse", "ResolveRequest", "ResolveResponse",
    "LocalMessageCreate", "MessageResponse",
    "ProviderTokenResponse",
    "IgnoredEvent", "MessageEvent", "UnrecognizedPayload", "WebhookEvent",
]
