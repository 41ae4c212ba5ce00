from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter
from redis.asyncio import Redis
from sqlalchemy import text
from src.core.config import get_settings
from src.infrastructure.db.session import get_session_factory

router = APIRouter(tags=["Observability"])
logger = structlog.get_logger()


async def check_database() -> dict:
    """Check the relational store."""
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"status": "ok"}
    except Exception as e:
        return {"status": "error", "message": type(e).__name__}


async def check_reset_store() -> dict:
    """Check the reset-code backend; the in-process map is always available."""
    settings = get_settings()
    if settings.reset_store_backend == "memory":
        return {"status": "ok", "backend": "memory"}

    client = Redis.from_url(settings.redis_url)
    try:
        await client.ping()
        return {"status": "ok", "backend": "redis"}
    except Exception as e:
        return {"status": "error", "backend": "redis", "message": type(e).__name__}
    finally:
        await client.aclose()


@router.get("/health", summary="Service health check")
async def health_check() -> dict:
    """Return basic service and datastore status information."""
    settings = get_settings()

    database_status = await check_database()
    reset_store_status = await check_reset_store()

    overall_status = "ok"
    if database_status.get("status") != "ok" or reset_store_status.get("status") != "ok":
        overall_status = "degraded"

    payload = {
        "service": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "status": overall_status,
        "timestamp": datetime.now(UTC).isoformat(),
        "datastores": {
            "database": database_status,
            "reset_store": reset_store_status,
        },
    }
    logger.info("health_check", **payload)
    return payload
