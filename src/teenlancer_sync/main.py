# src/teenlancer_sync/main.py
"""Main entry point for the message sync service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from teenlancer_sync.api.v1 import (
    conversations_router,
    messages_router,
    system_router,
    tokens_router,
    webhooks_router,
)
from teenlancer_sync.core.settings import settings
from teenlancer_sync.services.provider import get_provider_client
from teenlancer_sync.services.reconcile import ReconciliationWorker

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Teenlancer Message Sync API",
    description="Provider message synchronization and conversation summaries",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(conversations_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")
app.include_router(tokens_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    worker = ReconciliationWorker(get_provider_client())
    await worker.start()
    app.state.reconcile_worker = worker


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ReconciliationWorker | None = getattr(app.state, "reconcile_worker", None)
    if worker:
        await worker.stop()
    await get_provider_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("teenlancer_sync.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
