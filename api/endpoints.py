"""
API Endpoints for the Raffle Profile API.

This module defines the REST endpoints used by the raffle client.

Endpoints Provided:
- `/profile/{identifier}`: TikTok profile through the cache proxy. The
  response carries `X-Cache: HIT|MISS` and an `Age` header in seconds.
- `/profile/{identifier}/refresh`: Re-fetch a profile and overwrite the entry.
- `/cache/stats`, `/cache/purge`: Cache diagnostics and the purge-all
  operation. Purging is unconditional; the client asks for confirmation.
- `/participants`: Import a CSV batch (replacing the previous one) and list
  or search the current batch.
- `/draw/*`: Start, inspect, cancel and reset the suspense draw, and fetch
  the winner together with their profile.
- `/hosts`: The ordered list of up to three raffle hosts.

Architectural Design:
- `router` carries the profile and cache endpoints, `raffle_router` the
  participant, draw and host endpoints.
- Services live on `app.state` and are injected through `api.dependencies`.
- Application errors are raised as `RaffleAPIException` subclasses and
  rendered by the handlers in `core.middleware`.
- Winner enrichment degrades: if the profile lookup fails the winner is
  still returned, with `profile: null` and the error code.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from core.exceptions import InvalidArgumentError, NoWinnerError, RaffleAPIException
from core.logging_config import log_function_call
from core.models import Participant, Profile
from services.draw_service import DrawSession
from services.host_service import HostList
from services.participant_import import ParticipantRoster, parse_participants_csv
from services.profile_service import ProfileService
from .dependencies import (
    get_draw_session,
    get_host_list,
    get_profile_service,
    get_roster,
)

logger = logging.getLogger(__name__)


router = APIRouter(tags=["Profile Cache"])
raffle_router = APIRouter(tags=["Raffle"])


# Request/Response Models
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CachePurgeResponse(CamelModel):
    message: str
    removed_entries: int
    remaining_entries: int


class CacheStatsResponse(CamelModel):
    total_entries: int
    cached_keys: List[str]
    storage_description: str
    freshness_window_days: int


class ParticipantsResponse(CamelModel):
    imported: int
    participants: List[Participant]


class DrawStartRequest(CamelModel):
    duration_ms: Optional[int] = None


class DrawStatusResponse(CamelModel):
    state: str
    current_highlight: Optional[Participant] = None
    winner: Optional[Participant] = None
    ticks: int
    total_ticks: int
    participant_count: int
    step_ms: int


class DrawCancelResponse(DrawStatusResponse):
    cancelled: bool


class WinnerResponse(CamelModel):
    winner: Participant
    profile: Optional[Profile] = None
    profile_error: Optional[str] = None


class HostRequest(CamelModel):
    username: str


class HostsResponse(CamelModel):
    hosts: List[Profile]
    max_hosts: int


# Profile cache endpoints
@router.get(
    "/profile/{identifier}",
    response_model=Profile,
    response_model_exclude_none=True,
)
@log_function_call(logger)
async def get_profile(
    identifier: str,
    response: Response,
    profile_svc: ProfileService = Depends(get_profile_service),
):
    """Retrieve a TikTok profile from cache or fetch it upstream"""
    profile, cache_hit = await profile_svc.lookup_profile(identifier)

    response.headers["X-Cache"] = "HIT" if cache_hit else "MISS"
    response.headers["Age"] = str(int(profile.age().total_seconds()))
    return profile


@router.post(
    "/profile/{identifier}/refresh",
    response_model=Profile,
    response_model_exclude_none=True,
)
@log_function_call(logger)
async def refresh_profile(
    identifier: str,
    profile_svc: ProfileService = Depends(get_profile_service),
):
    """Fetch a profile again and overwrite the cached entry"""
    return await profile_svc.refresh_profile(identifier)


@router.post("/cache/purge", response_model=CachePurgeResponse)
async def purge_cache(profile_svc: ProfileService = Depends(get_profile_service)):
    """Remove every cached profile"""
    removed = await profile_svc.purge_all()
    remaining = await profile_svc.count()
    return CachePurgeResponse(
        message="Cache cleanup completed",
        removed_entries=removed,
        remaining_entries=remaining,
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(profile_svc: ProfileService = Depends(get_profile_service)):
    """Number of cached profiles and their keys"""
    return await profile_svc.cache_stats()


# Participant endpoints
@raffle_router.post("/participants", response_model=ParticipantsResponse)
async def import_participants(
    request: Request, roster: ParticipantRoster = Depends(get_roster)
):
    """Replace the participant batch with the CSV in the request body"""
    body = await request.body()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidArgumentError("csv", "<binary>", "File must be UTF-8 text")

    participants = roster.replace(parse_participants_csv(text))
    logger.info(f"Imported {len(participants)} participants")
    return ParticipantsResponse(imported=len(participants), participants=list(participants))


@raffle_router.get("/participants", response_model=ParticipantsResponse)
async def list_participants(
    search: str = Query("", max_length=200),
    roster: ParticipantRoster = Depends(get_roster),
):
    """List the current batch, optionally filtered by name, username or id"""
    matches = roster.search(search)
    return ParticipantsResponse(imported=len(roster), participants=list(matches))


# Draw endpoints
@raffle_router.post("/draw/start", response_model=DrawStatusResponse)
@log_function_call(logger)
async def start_draw(
    request: Optional[DrawStartRequest] = None,
    session: DrawSession = Depends(get_draw_session),
    roster: ParticipantRoster = Depends(get_roster),
):
    """Start the suspense phase; poll /draw/status for progress"""
    duration_ms = request.duration_ms if request else None
    session.start(roster.participants, duration_ms=duration_ms)
    return DrawStatusResponse(**session.snapshot())


@raffle_router.get("/draw/status", response_model=DrawStatusResponse)
async def draw_status(session: DrawSession = Depends(get_draw_session)):
    return DrawStatusResponse(**session.snapshot())


@raffle_router.post("/draw/cancel", response_model=DrawCancelResponse)
async def cancel_draw(session: DrawSession = Depends(get_draw_session)):
    cancelled = session.cancel()
    return DrawCancelResponse(cancelled=cancelled, **session.snapshot())


@raffle_router.post("/draw/reset", response_model=DrawStatusResponse)
async def reset_draw(session: DrawSession = Depends(get_draw_session)):
    session.reset()
    return DrawStatusResponse(**session.snapshot())


@raffle_router.get(
    "/draw/winner", response_model=WinnerResponse, response_model_exclude_none=True
)
async def get_winner(
    session: DrawSession = Depends(get_draw_session),
    profile_svc: ProfileService = Depends(get_profile_service),
):
    """The drawn winner, enriched with their TikTok profile when available"""
    winner = session.winner
    if winner is None:
        raise NoWinnerError(session.state.value)

    try:
        profile = await profile_svc.get_profile(winner.username)
    except RaffleAPIException as e:
        logger.warning(
            f"TikTok profile unavailable for winner {winner.username}: {e.error_code}"
        )
        return WinnerResponse(winner=winner, profile_error=e.error_code)

    return WinnerResponse(winner=winner, profile=profile)


# Host endpoints
def _hosts_response(host_list: HostList) -> HostsResponse:
    return HostsResponse(hosts=list(host_list.hosts), max_hosts=host_list.max_hosts)


@raffle_router.get("/hosts", response_model=HostsResponse, response_model_exclude_none=True)
async def list_hosts(host_list: HostList = Depends(get_host_list)):
    return _hosts_response(host_list)


@raffle_router.post("/hosts", response_model=HostsResponse, response_model_exclude_none=True)
async def add_host(
    request: HostRequest,
    host_list: HostList = Depends(get_host_list),
    profile_svc: ProfileService = Depends(get_profile_service),
):
    """Look up a TikTok profile and append it to the host list"""
    host_list.ensure_can_add(request.username)
    profile = await profile_svc.get_profile(request.username)
    host_list.add(profile)
    return _hosts_response(host_list)


@raffle_router.delete(
    "/hosts/{username}", response_model=HostsResponse, response_model_exclude_none=True
)
async def remove_host(username: str, host_list: HostList = Depends(get_host_list)):
    host_list.remove(username)
    return _hosts_response(host_list)
