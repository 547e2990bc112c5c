from fastapi import Request, Response
from fastapi_limiter.depends import RateLimiter

from cadastre_listings.config import settings


def rate_limit(times: int, seconds: int):
    """RateLimiter that can be switched off with RATE_LIMIT_ENABLED (checked per request)."""
    limiter = RateLimiter(times=times, seconds=seconds)

    async def dependency(request: Request, response: Response):
        if not settings.RATE_LIMIT_ENABLED:
            return
        await limiter(request, response)

    return dependency
