# backend/academy/config.py
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # DB URL used by SQLAlchemy. Point it at Postgres in production.
    DATABASE_URL: str = "sqlite:///./academy.db"

    # Shared store for the rate limiter when RATE_LIMIT_BACKEND=redis
    REDIS_URL: str = "redis://redis:6379/0"
    RATE_LIMIT_BACKEND: str = "memory"   # memory | redis
    RATE_LIMIT_SWEEP_SECONDS: int = 60

    # App options (used by db.py and elsewhere)
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    SECRET_KEY: str = "change-me"
    ADMIN_API_KEY: str = "change-me-admin"
    AUTO_CREATE_TABLES: bool = True    # dev only, use migrations in production

    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024
    ACADEMY_TIMEZONE: str = "Asia/Seoul"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
