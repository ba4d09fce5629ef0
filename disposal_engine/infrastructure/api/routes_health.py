"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from disposal_engine.adapters.persistence.database import get_session
from disposal_engine.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Report database reachability and the active assignment defaults."""
    try:
        await session.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        database = f"error: {e}"

    return {
        "status": "ok" if database == "connected" else "degraded",
        "database": database,
        "default_strategy": settings.default_strategy.value,
        "recommendation_limit": settings.recommendation_limit,
    }
