# src/teenlancer_sync/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .conversations import router as conversations_router
from .messages import router as messages_router
from .system import router as system_router
from .tokens import router as tokens_router
from .webhooks import router as webhooks_router

__all__ = [
    "conversations_router",
    "messages_router",
    "system_router",
    "tokens_router",
    "webhooks_router",
]
