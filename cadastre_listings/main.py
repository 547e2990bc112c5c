from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cadastre_listings.routers import health
from cadastre_listings.routers import properties
from cadastre_listings.core.logging import setup_logging
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis
from cadastre_listings.config import settings

app = FastAPI(title="Cadastre Listings Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Degraded-Sources"],
)
app.include_router(properties.router)
app.include_router(health.router)

@app.on_event("startup")
async def startup_event():
    setup_logging(settings.LOG_LEVEL)
    if settings.RATE_LIMIT_ENABLED:
        redis = await Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(redis)
