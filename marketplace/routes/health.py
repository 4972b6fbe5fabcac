from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker

from marketplace.dependencies import get_session_factory
from marketplace.scheduler import get_scheduler_status

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Campus Marketplace Chat"}


@router.get("/health/db")
async def database_health(session_factory: async_sessionmaker = Depends(get_session_factory)):
    """Check database connectivity"""
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }


@router.get("/health/scheduler")
async def scheduler_health():
    """Background job status"""
    return await get_scheduler_status()
