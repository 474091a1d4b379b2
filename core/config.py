"""
Runtime configuration for the Raffle Profile API.

All settings come from environment variables so the same build can run in
development (SQLite file, coloured logs) and production (PostgreSQL, JSON
logs) without code changes.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

DEFAULT_RAPIDAPI_HOST = "tiktok-api23.p.rapidapi.com"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./raffle_profiles.db"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the environment at startup"""

    rapidapi_key: Optional[str] = None
    rapidapi_host: str = DEFAULT_RAPIDAPI_HOST
    upstream_timeout_seconds: int = 10
    profile_store: str = "database"
    database_url: str = DEFAULT_DATABASE_URL
    profile_freshness_days: int = 30
    draw_duration_ms: int = 7000
    draw_step_ms: int = 100
    max_hosts: int = 3
    environment: str = "development"
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"]
    )

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            rapidapi_key=os.getenv("RAPIDAPI_KEY") or None,
            rapidapi_host=os.getenv("RAPIDAPI_HOST", DEFAULT_RAPIDAPI_HOST),
            upstream_timeout_seconds=_int_env("UPSTREAM_TIMEOUT_SECONDS", 10),
            profile_store=os.getenv("PROFILE_STORE", "database").lower(),
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            profile_freshness_days=_int_env("PROFILE_FRESHNESS_DAYS", 30),
            draw_duration_ms=_int_env("DRAW_DURATION_MS", 7000),
            draw_step_ms=_int_env("DRAW_STEP_MS", 100),
            max_hosts=_int_env("MAX_HOSTS", 3),
            environment=os.getenv("ENVIRONMENT", "development").lower(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()]
            if origins
            else ["http://localhost:3000", "http://localhost:3001"],
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process; tests call get_settings.cache_clear()"""
    return Settings.from_env()
