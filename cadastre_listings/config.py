from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://user:password@db:5432/cadastre_db"
    REDIS_URL: str = "redis://localhost:6379/0"
    # Where raw cadastral rows come from: "database" reads the tables directly,
    # "http" goes through the records CRUD API (GET /api/data/{table})
    RECORD_SOURCE_BACKEND: str = "database"
    RECORDS_API_URL: str = "http://records-admin:3000"
    SOURCE_TIMEOUT_SECONDS: float = 10.0
    SOURCE_RETRY_TRIES: int = 3
    SOURCE_RETRY_DELAY: float = 0.5
    # Unified snapshot cache
    SNAPSHOT_CACHE_ENABLED: bool = True
    SNAPSHOT_CACHE_KEY: str = "listings:snapshot"
    SNAPSHOT_CACHE_TTL_SECONDS: int = 300
    RATE_LIMIT_ENABLED: bool = True
    DEFAULT_CURRENCY: str = "XAF"
    DEFAULT_LOCATION: str = "Yaoundé, Cameroon"
    SIMILAR_DEFAULT_LIMIT: int = 6
    SIMILAR_PRICE_TOLERANCE: float = 0.3
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: List[str] = ["https://*.onrender.com", "https://*.vercel.app"]
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
