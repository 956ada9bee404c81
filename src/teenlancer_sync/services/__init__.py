# src/teenlancer_sync/services/__init__.py
"""Business logic services for the message sync service."""

from .aggregator import ConversationAggregator, ConversationSummary
from .conversation_resolver import ConversationResolver
from .ingestion import IngestOutcome, IngestResult, MessageIngestionPipeline, ReconcileResult
from .message_store import MessageStore
from .tokens import IssuedToken, ProviderTokenIssuer
from .tombstones import TombstoneStore

__all__ = [
    "ConversationAggregator", "ConversationSummary",
    "ConversationResolver",
    "IngestOutcome", "IngestResult", "MessageIngestionPipeline", "ReconcileResult",
    "MessageStore",
    "IssuedToken", "ProviderTokenIssuer",
    "TombstoneStore",
]
