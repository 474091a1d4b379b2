"""
Database Engine Management.

Builds the asynchronous SQLAlchemy engine used by the database-backed profile
store and creates its tables. SQLite (via `aiosqlite`) is the development
default; PostgreSQL (via `asyncpg`) is used when `DATABASE_URL` points at it.

Key Components:
- `create_engine_for_url`: Engine factory with pool settings per backend.
- `create_session_factory`: `async_sessionmaker` bound to an engine.
- `create_db_and_tables`: Creates the SQLModel tables at startup.
- `get_database_info`: Connectivity and pool diagnostics for health checks,
  with credentials masked out of the URL.
"""

import logging
from typing import Any, Dict
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool
from sqlmodel import SQLModel

logger = logging.getLogger(__name__)


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create an async engine configured for the database type in the URL"""
    if is_sqlite(database_url):
        if ":memory:" in database_url:
            # An in-memory database lives and dies with its single connection
            return create_async_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=AsyncAdaptedQueuePool,
            echo=False,  # Set to True for SQL debugging
        )

    return create_async_engine(
        database_url,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Validate connections before use
        echo=False,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables(engine: AsyncEngine) -> None:
    """
    Create all tables.
    Called when the database profile store connects.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Profile store tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create profile store tables: {e}")
        raise


def mask_database_url(database_url: str) -> str:
    """Hide credentials in a database URL"""
    if "@" not in database_url:
        return database_url
    scheme, _, rest = database_url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


async def get_database_info(engine: AsyncEngine, database_url: str) -> Dict[str, Any]:
    """
    Get basic database information for health checks.
    """
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.scalar()
            connection_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        connection_healthy = False

    return {
        "database_url": mask_database_url(database_url),
        "connection_healthy": connection_healthy,
        "database_type": "sqlite" if is_sqlite(database_url) else "postgresql",
    }
