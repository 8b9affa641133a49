from fastapi import APIRouter, Depends, HTTPException
from typing import Dict
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.cache.redis_client import cache
from partyfinder.core.logging import logger
from partyfinder.db.session import get_session

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=Dict[str, str])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready", response_model=Dict[str, str])
async def readiness_check(session: AsyncSession = Depends(get_session)):
    """
    Readiness probe.

    The database is required. Redis is reported but optional, since every
    cache call degrades to a miss when it is down.
    """
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed, database unreachable: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")

    return {
        "status": "ready",
        "database": "ok",
        "cache": "ok" if await cache.ping() else "unavailable",
    }
