"""Health check endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import logging

from ..core.cache import cache_manager
from ..core.config import settings
from ..core.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])


async def _database_ok(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return False


@router.get("")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": "School Management API",
        "version": settings.app_version,
    }


@router.get("/db")
async def database_health(session: AsyncSession = Depends(get_db)):
    healthy = await _database_ok(session)
    return {"status": "healthy" if healthy else "unhealthy", "database": healthy}


@router.get("/full")
async def full_health(session: AsyncSession = Depends(get_db)):
    """Database and cache status together"""
    database = await _database_ok(session)
    cache = await cache_manager.health()
    return {
        "status": "healthy" if database else "unhealthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {"database": database, "cache": cache},
    }
