"""
Raffle Profile API - Main Application Entry Point.

This module builds the FastAPI application behind the raffle/giveaway client.
It wires configuration, logging, the profile store, the TikTok upstream
provider and the raffle services, and mounts the routers.

Key Responsibilities:
- `create_app`: Application factory. Tests pass their own settings, store or
  provider; production uses the environment.
- `lifespan`: Connects the profile store on startup and disconnects it on
  shutdown after cancelling any draw still in suspense.
- Middleware: CORS for the browser client, request timing and correlation IDs.

Architecture:
Services are created once per application and stored on `app.state`; routers
receive them through the dependency functions in `api.dependencies`. Nothing
is kept in module-level globals apart from the default `app` instance used
by uvicorn.
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api.endpoints import router, raffle_router
from api.health_router import health_router, monitoring_router, VERSION
from core.cache import ProfileStore, create_profile_store
from core.config import Settings, get_settings
from core.logging_config import setup_logging, get_logger
from core.middleware import (
    CorrelationMiddleware,
    PerformanceMiddleware,
    register_error_handlers,
)
from providers.tiktok_provider import ProfileProvider, TikTokUserInfoProvider
from services.draw_service import DrawSession
from services.host_service import HostList
from services.participant_import import ParticipantRoster
from services.profile_service import ProfileService


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger = get_logger("api.startup")

    await app.state.profile_store.connect()
    logger.info(f"Profile store ready ({app.state.profile_store.describe()})")
    if not app.state.settings.rapidapi_key:
        logger.warning("RAPIDAPI_KEY is not set; cache misses will fail")

    logger.info("Service startup completed")
    yield

    # Cleanup on shutdown
    logger.info("Shutting down Raffle Profile API")
    await app.state.draw_session.shutdown()
    await app.state.profile_store.disconnect()
    logger.info("Cleanup completed")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ProfileStore] = None,
    provider: Optional[ProfileProvider] = None,
) -> FastAPI:
    settings = settings or get_settings()
    store = store or create_profile_store(settings)
    provider = provider or TikTokUserInfoProvider(
        api_key=settings.rapidapi_key,
        api_host=settings.rapidapi_host,
        timeout_seconds=settings.upstream_timeout_seconds,
    )

    app = FastAPI(
        title="Raffle Profile API",
        description="Raffle draws with cached TikTok profile lookups",
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.profile_store = store
    app.state.profile_service = ProfileService(
        store,
        provider,
        freshness_window=timedelta(days=settings.profile_freshness_days),
    )
    app.state.draw_session = DrawSession(
        duration_ms=settings.draw_duration_ms, step_ms=settings.draw_step_ms
    )
    app.state.host_list = HostList(max_hosts=settings.max_hosts)
    app.state.roster = ParticipantRoster()

    # CORS middleware (required for the browser client)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Cache", "Age", "X-Correlation-ID"],
    )
    app.add_middleware(PerformanceMiddleware)
    # Added last so it runs first
    app.add_middleware(CorrelationMiddleware)

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(monitoring_router)
    app.include_router(router)
    app.include_router(raffle_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8002,
        reload=True,
        log_level="info",
    )
