"""System and monitoring endpoints."""

from __future__ import annotations

import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from teenlancer_sync.core.settings import settings

from ..dependencies import ProviderClientDep, SessionDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/provider")
async def get_provider_status(client: ProviderClientDep) -> dict[str, object]:
    """Get provider health and request metrics.

    Returns:
        Dictionary with provider health information and operation metrics
    """
    health = await client.health_check()
    return {
        "health": health,
        "metrics": client.get_metrics(),
        "reconcile": {
            "interval_seconds": settings.reconcile_interval_seconds,
            "batch_size": settings.reconcile_batch_size,
        },
    }


@router.get("/health")
async def get_system_health(db: SessionDep, client: ProviderClientDep) -> dict[str, object]:
    """Health check covering the database and the provider.

    Args:
        db: Database session
        client: Shared provider client

    Returns:
        Dictionary with overall system status, component health, and version info
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"

    provider_health = await client.health_check()

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {
            "database": db_status,
            "provider": provider_health.get("status", "unknown"),
        },
        "version": settings.app_version,
    }
