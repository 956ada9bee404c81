# src/teenlancer_sync/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    conversations_router,
    messages_router,
    system_router,
    tokens_router,
    webhooks_router,
)

__all__ = [
    "conversations_router",
    "messages_router",
    "system_router",
    "tokens_router",
    "webhooks_router",
]
