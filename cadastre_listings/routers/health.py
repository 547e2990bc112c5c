from fastapi import APIRouter, Depends, HTTPException
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.sql import text
from structlog import get_logger

from cadastre_listings.config import settings
from cadastre_listings.dependencies.listings import get_listing_service
from cadastre_listings.services.listings import ListingService

logger = get_logger()
router = APIRouter(prefix="/api/v1", tags=["health"])

@router.get("/health")
async def health():
    return {"status": "ok"}

@router.get("/health/ready")
async def readiness():
    details = {"status": "ok", "checks": {}}

    if settings.SNAPSHOT_CACHE_ENABLED:
        try:
            redis = Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
            pong = await redis.ping()
            details["checks"]["redis"] = "ok" if pong else "fail"
            await redis.aclose()
        except Exception as e:
            logger.warning("health redis fail", error=str(e))
            details["checks"]["redis"] = "fail"
            details["status"] = "degraded"

    if settings.RECORD_SOURCE_BACKEND.lower() == "database":
        engine = create_async_engine(settings.DATABASE_URL)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            details["checks"]["database"] = "ok"
        except Exception as e:
            logger.warning("health db fail", error=str(e))
            details["checks"]["database"] = "fail"
            details["status"] = "degraded"
        finally:
            await engine.dispose()

    return details

@router.post("/cache/clear")
async def clear_cache(service: ListingService = Depends(get_listing_service)):
    """
    Drop the cached listings snapshot.
    The next request rebuilds it from the record sources.
    """
    try:
        deleted = await service.invalidate()
        return {"status": "ok", "cleared_keys": deleted}
    except Exception as e:
        logger.error("Failed to clear cache", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to clear cache")
