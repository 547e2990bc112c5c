import json
from typing import List, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError
from structlog import get_logger

from cadastre_listings.config import Settings
from cadastre_listings.schemas.property import Property
from cadastre_listings.services.collection import CollectionBuilder, CollectionResult
from cadastre_listings.services.sources import build_sources

logger = get_logger()


class ListingService:
    """Serves the unified snapshot, optionally cached in Redis.

    The builder itself keeps no state; staleness is decided here by the TTL.
    Partial builds (some kind failed) are served but never cached.
    """

    def __init__(
        self,
        builder: CollectionBuilder,
        redis: Optional[Redis] = None,
        ttl: int = 300,
        cache_key: str = "listings:snapshot",
    ):
        self.builder = builder
        self.redis = redis
        self.ttl = ttl
        self.cache_key = cache_key

    async def _read_cache(self) -> Optional[List[Property]]:
        if self.redis is None:
            return None
        try:
            cached = await self.redis.get(self.cache_key)
        except RedisError as e:
            logger.warning("Snapshot cache read failed", cache_key=self.cache_key, error=str(e))
            return None
        if not cached:
            logger.info("Snapshot cache miss", cache_key=self.cache_key)
            return None
        try:
            return [Property.model_validate(item) for item in json.loads(cached)]
        except (ValueError, TypeError, ValidationError):
            logger.warning("Snapshot cache corrupt; rebuilding", cache_key=self.cache_key)
            return None

    async def _write_cache(self, properties: List[Property]) -> None:
        payload = json.dumps([p.model_dump(mode="json") for p in properties])
        try:
            await self.redis.setex(self.cache_key, self.ttl, payload)
        except RedisError as e:
            logger.warning("Snapshot cache write failed", cache_key=self.cache_key, error=str(e))

    async def snapshot(self) -> CollectionResult:
        cached = await self._read_cache()
        if cached is not None:
            logger.info("Snapshot cache hit", cache_key=self.cache_key, properties=len(cached))
            return CollectionResult(properties=cached)

        result = await self.builder.build()
        if self.redis is not None and result.complete:
            await self._write_cache(result.properties)
        return result

    async def invalidate(self) -> int:
        if self.redis is None:
            return 0
        deleted = await self.redis.delete(self.cache_key)
        logger.info("Snapshot cache cleared", cache_key=self.cache_key, deleted_keys=deleted)
        return deleted


def create_listing_service(settings: Settings) -> ListingService:
    kinds, hierarchy = build_sources(settings)
    redis = None
    if settings.SNAPSHOT_CACHE_ENABLED:
        redis = Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    return ListingService(
        CollectionBuilder(kinds, hierarchy),
        redis=redis,
        ttl=settings.SNAPSHOT_CACHE_TTL_SECONDS,
        cache_key=settings.SNAPSHOT_CACHE_KEY,
    )
