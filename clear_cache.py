#!/usr/bin/env python3
"""
Script to drop the cached listings snapshot.
Run this after editing cadastral records so the next request rebuilds it.
"""
import asyncio
from redis.asyncio import Redis
from cadastre_listings.config import settings

async def clear_cache():
    redis = Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    deleted = await redis.delete(settings.SNAPSHOT_CACHE_KEY)
    if deleted:
        print(f"✓ Cleared {settings.SNAPSHOT_CACHE_KEY}")
    else:
        print("✓ No cached snapshot found")

    await redis.aclose()

if __name__ == "__main__":
    asyncio.run(clear_cache())
