"""Background pull reconciliation of provider conversations.

This module provides the ReconciliationWorker class that periodically lists
the messages of recently created conversations from the provider and feeds
them through the ingestion pipeline, repairing gaps left by missed webhooks.
The worker keeps no cursor: every sweep re-lists and relies on idempotent
ingestion.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teenlancer_sync.core.settings import settings
from teenlancer_sync.db.session import SessionLocal
from teenlancer_sync.models import ConversationMapping
from teenlancer_sync.services.ingestion import MessageIngestionPipeline, ReconcileResult
from teenlancer_sync.services.provider import (
    ProviderAPIError,
    ProviderClient,
    ProviderError,
    ProviderUnavailable,
    get_provider_client,
)

logger = logging.getLogger(__name__)


class ReconciliationWorker:
    """Periodically reconciles the newest conversation mappings with the provider."""

    def __init__(
        self, client: ProviderClient | None = None, db_session: Session | None = None
    ) -> None:
        """Initialize the reconciliation worker.

        Args:
            client: Optional provider client instance. If None, uses the global client.
            db_session: Optional database session. If None, creates one per sweep.
        """
        self.client = client or get_provider_client()
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._db_session = db_session

    @property
    def interval(self) -> float:
        return float(settings.reconcile_interval_seconds)

    async def start(self) -> None:
        """Start the background reconciliation loop."""

        if not self.client.enabled or self.interval <= 0:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background reconciliation loop."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _sleep(self, seconds: float) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)

    async def _run(self) -> None:
        interval = max(0.1, self.interval)
        backoff = min(interval * 4, 30.0)

        while not self._stopping.is_set():
            try:
                await self.sweep_once()
            except ProviderUnavailable as e:
                logger.warning("ReconciliationWorker: provider unavailable: %s", e)
                await self._sleep(backoff)
                continue
            except ProviderError as e:
                logger.warning("ReconciliationWorker encountered ProviderError: %s", e)
                await self._sleep(backoff)
                continue
            except SQLAlchemyError as e:
                logger.error("ReconciliationWorker encountered database error: %s", e, exc_info=True)
                await self._sleep(backoff)
                continue

            await self._sleep(interval)

    async def sweep_once(self) -> list[ReconcileResult]:
        """Reconcile one batch of the most recently created conversations."""
        if self._db_session is not None:
            return await self._sweep_with_session(self._db_session)

        with SessionLocal() as db:
            return await self._sweep_with_session(db)

    async def _sweep_with_session(self, db: Session) -> list[ReconcileResult]:
        stmt = (
            select(ConversationMapping.external_handle, ConversationMapping.job_id)
            .order_by(ConversationMapping.created_at.desc(), ConversationMapping.id.desc())
            .limit(max(1, settings.reconcile_batch_size))
        )
        targets = db.execute(stmt).all()
        logger.debug("Reconciling %d conversations", len(targets))

        pipeline = MessageIngestionPipeline(db, self.client)
        results = []
        for handle, job_id in targets:
            try:
                results.append(await pipeline.reconcile(handle, job_id))
            except ProviderAPIError as e:
                # Continue with the rest of the batch.
                logger.warning("Skipping reconciliation of %s: %s", handle, e)

        synced = sum(result.synced for result in results)
        if synced:
            logger.info("Reconciliation sweep recovered %d missed messages", synced)
        return results
