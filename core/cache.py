"""
Profile Store for the Raffle Profile API.

The profile store is the key-value layer behind the profile cache proxy. It
maps a normalized TikTok username to exactly one immutable `Profile`. There is
no automatic eviction: entries are overwritten by an explicit refresh and
removed only by `clear()`.

Key Components:
- ProfileStore (ABC): The interface every backend implements, including the
  `connect()` / `disconnect()` lifecycle so the application can open and
  release resources in its lifespan handler.
- MemoryProfileStore: A dictionary guarded by an `asyncio.Lock`. Fast and
  dependency free; contents are lost on restart. Used in tests and for
  throwaway deployments.
- DatabaseProfileStore: SQLModel table behind an async SQLAlchemy engine.
  Survives restarts as long as the database does.
- create_profile_store: Picks a backend from `Settings`.

Architectural Design:
- Strategy Pattern: `ProfileService` only sees `ProfileStore`, so backends can
  be swapped by configuration.
- Explicit handles: the store is created in the lifespan handler and passed
  to the service by reference; there is no module-level store instance.
- Serialized operations: every read and write is a single locked section
  (memory) or a single transaction (database), so a partially written
  profile is never observed.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel import select

from core.config import Settings
from core.database import (
    create_db_and_tables,
    create_engine_for_url,
    create_session_factory,
    get_database_info,
    mask_database_url,
)
from core.exceptions import ConfigurationError, StoreError
from core.logging_config import get_logger
from core.models import CachedProfile, Profile

logger = get_logger(__name__)


class ProfileStore(ABC):
    """Abstract base class for profile stores"""

    async def connect(self) -> None:
        """Acquire backend resources"""

    async def disconnect(self) -> None:
        """Release backend resources"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Profile]:
        """Get the profile stored under key"""
        pass

    @abstractmethod
    async def set(self, key: str, profile: Profile) -> None:
        """Store profile under key, replacing any previous one"""
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        """All stored keys in ascending order"""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of stored entries"""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Remove every entry and return how many were removed"""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Human readable storage location"""
        pass

    async def health_check(self) -> Dict[str, Any]:
        try:
            entries = await self.count()
            return {"status": "healthy", "storage": self.describe(), "entries": entries}
        except Exception as e:
            logger.error(f"Profile store health check failed: {e}")
            return {"status": "unhealthy", "storage": self.describe(), "error": str(e)}


class MemoryProfileStore(ProfileStore):
    """In-process profile store"""

    def __init__(self):
        self._profiles: Dict[str, Profile] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Profile]:
        async with self._lock:
            profile = self._profiles.get(key)
        logger.debug(f"Store {'hit' if profile else 'miss'} for key: {key}")
        return profile

    async def set(self, key: str, profile: Profile) -> None:
        async with self._lock:
            self._profiles[key] = profile
        logger.debug(f"Store set for key: {key}")

    async def keys(self) -> List[str]:
        async with self._lock:
            return sorted(self._profiles)

    async def count(self) -> int:
        async with self._lock:
            return len(self._profiles)

    async def clear(self) -> int:
        async with self._lock:
            removed = len(self._profiles)
            self._profiles.clear()
        logger.info(f"Memory profile store cleared ({removed} entries)")
        return removed

    def describe(self) -> str:
        return "memory"


class DatabaseProfileStore(ProfileStore):
    """Profile store persisted in a SQL database"""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_engine_for_url(self.database_url)
        self._sessions = create_session_factory(self._engine)
        await create_db_and_tables(self._engine)
        logger.info(f"Profile store connected to {mask_database_url(self.database_url)}")

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Profile store disconnected")

    def _session(self):
        if self._sessions is None:
            raise StoreError("session", "store is not connected")
        return self._sessions()

    async def get(self, key: str) -> Optional[Profile]:
        try:
            async with self._session() as session:
                row = await session.get(CachedProfile, key)
                return row.to_profile() if row else None
        except SQLAlchemyError as e:
            raise StoreError("get", str(e)) from e

    async def set(self, key: str, profile: Profile) -> None:
        try:
            async with self._session() as session:
                await session.merge(CachedProfile.from_profile(key, profile))
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError("set", str(e)) from e
        logger.debug(f"Store set for key: {key}")

    async def keys(self) -> List[str]:
        try:
            async with self._session() as session:
                result = await session.execute(
                    select(CachedProfile.key).order_by(CachedProfile.key)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError("keys", str(e)) from e

    async def count(self) -> int:
        try:
            async with self._session() as session:
                result = await session.execute(
                    select(func.count()).select_from(CachedProfile)
                )
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise StoreError("count", str(e)) from e

    async def clear(self) -> int:
        try:
            async with self._session() as session:
                result = await session.execute(delete(CachedProfile))
                removed = max(result.rowcount or 0, 0)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError("clear", str(e)) from e
        logger.info(f"Database profile store cleared ({removed} entries)")
        return removed

    def describe(self) -> str:
        return f"database: {mask_database_url(self.database_url)}"

    async def health_check(self) -> Dict[str, Any]:
        status = await super().health_check()
        if self._engine is not None:
            status["database"] = await get_database_info(self._engine, self.database_url)
        return status


def create_profile_store(settings: Settings) -> ProfileStore:
    """Build the store selected by PROFILE_STORE"""
    if settings.profile_store == "memory":
        return MemoryProfileStore()
    if settings.profile_store == "database":
        return DatabaseProfileStore(settings.database_url)
    raise ConfigurationError(
        "PROFILE_STORE", f"has unknown value {settings.profile_store!r}"
    )
