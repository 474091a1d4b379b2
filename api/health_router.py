"""
Health and Monitoring Router.

Unauthenticated endpoints for uptime checks and operators.

Endpoints Provided:
- `/healthcheck`: Lightweight liveness check.
- `/monitoring/ping`: Connectivity test.
- `/monitoring/detailed`: Status of the profile store, upstream configuration
  and draw session. Reports "degraded" instead of failing when a component
  is unhealthy.
"""

from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Request

from core.logging_config import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "Raffle Profile API"
VERSION = "1.0.0"

health_router = APIRouter(tags=["Health & Monitoring"])
monitoring_router = APIRouter(prefix="/monitoring", tags=["Health & Monitoring"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_router.get("/healthcheck")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint"""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": VERSION,
        "service": SERVICE_NAME,
    }


@monitoring_router.get("/ping")
async def ping() -> Dict[str, str]:
    """Simple ping endpoint for connectivity testing"""
    return {"message": "pong", "timestamp": _now(), "version": VERSION}


@monitoring_router.get("/detailed")
async def detailed_health_check(request: Request) -> Dict[str, Any]:
    """Detailed health check with component status"""
    logger.info("Detailed health check requested")
    state = request.app.state

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": _now(),
        "version": VERSION,
        "service": SERVICE_NAME,
        "components": {},
    }

    store_health = await state.profile_store.health_check()
    health_status["components"]["profile_store"] = store_health
    if store_health.get("status") != "healthy":
        health_status["status"] = "degraded"

    # A missing key only matters on cache misses
    upstream_configured = bool(state.settings.rapidapi_key)
    health_status["components"]["upstream"] = {
        "status": "configured" if upstream_configured else "missing_api_key",
        "host": state.settings.rapidapi_host,
    }
    if not upstream_configured:
        health_status["status"] = "degraded"

    health_status["components"]["draw"] = {
        "state": state.draw_session.state.value,
        "participants": len(state.roster),
        "hosts": len(state.host_list),
    }

    return health_status
