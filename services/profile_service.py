"""
Profile Cache Proxy.

This module defines `ProfileService`, the cache-through proxy in front of the
TikTok user-info upstream. Given any spelling of a username it either returns
the stored `Profile` or performs one upstream request, normalizes the
payload, stores it and returns it.

Lookup Strategy:
1. Normalize the identifier (strip '@', lowercase). Empty keys are rejected
   before any I/O.
2. On a store hit, return the stored profile as-is. Its age is logged but no
   freshness check is made; stored profiles stay valid until a purge.
3. On a miss, call the provider exactly once. Only a payload with a success
   status and a user object is accepted; anything else is a
   `ProfileNotFoundError` and nothing is stored.
   A successful payload whose fields have unusable types is reported as
   `UpstreamUnavailableError`; nothing is stored either.
4. Store the normalized profile with `cached_at` set to now and return it.

Failures are never swallowed here. `ProfileNotFoundError`,
`UpstreamUnavailableError` and `ConfigurationError` reach the caller with
their kind intact; retrying is the caller's decision.

Concurrent misses for the same key may each reach the upstream. Both calls
store an equivalent profile, so no single-flight bookkeeping is kept.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from pydantic import ValidationError
from core.cache import ProfileStore
from core.exceptions import ProfileNotFoundError, UpstreamUnavailableError
from core.models import DEFAULT_BIO, Profile, utcnow
from core.validation import display_username, normalize_profile_key
from providers.tiktok_provider import ProfileProvider

logger = logging.getLogger(__name__)


def _count(value: Any) -> int:
    """Upstream counters; missing or malformed values count as zero"""
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def is_successful_payload(payload: Dict[str, Any]) -> bool:
    status = payload.get("status_code", payload.get("statusCode"))
    user_info = payload.get("userInfo")
    if status != 0 or not isinstance(user_info, dict):
        return False
    user = user_info.get("user")
    return isinstance(user, dict) and bool(user.get("nickname"))


def profile_from_payload(
    key: str, payload: Dict[str, Any], cached_at: Optional[datetime] = None
) -> Profile:
    """Map an upstream user-info payload onto a Profile"""
    user_info = payload["userInfo"]
    user = user_info["user"]
    stats = user_info.get("stats") or {}

    bio_link = user.get("bioLink")
    unique_id = user.get("uniqueId") or key

    return Profile(
        username=display_username(unique_id),
        display_name=user["nickname"],
        follower_count=_count(stats.get("followerCount")),
        avatar_url=user.get("avatarMedium") or user.get("avatarThumb") or "",
        verified=bool(user.get("verified", False)),
        bio=user.get("signature") or DEFAULT_BIO,
        likes_count=_count(stats.get("heartCount")),
        video_count=_count(stats.get("videoCount")),
        bio_link=bio_link.get("link") if isinstance(bio_link, dict) else None,
        cached_at=cached_at or utcnow(),
    )


class ProfileService:
    """Cache-through proxy for TikTok profiles"""

    def __init__(
        self,
        store: ProfileStore,
        provider: ProfileProvider,
        freshness_window: timedelta = timedelta(days=30),
    ):
        self.store = store
        self.provider = provider
        self.freshness_window = freshness_window

    async def lookup_profile(self, raw_identifier: str) -> Tuple[Profile, bool]:
        """Return (profile, cache_hit)"""
        key = normalize_profile_key(raw_identifier)

        cached = await self.store.get(key)
        if cached is not None:
            logger.info(
                f"Serving cached data for {key} (cached {cached.age().days} days ago)"
            )
            if not cached.is_fresh(self.freshness_window):
                logger.debug(f"Cached profile for {key} is past the advisory window")
            return cached, True

        return await self._fetch_and_store(key), False

    async def get_profile(self, raw_identifier: str) -> Profile:
        profile, _ = await self.lookup_profile(raw_identifier)
        return profile

    async def refresh_profile(self, raw_identifier: str) -> Profile:
        """Fetch again and overwrite whatever is stored for the key"""
        key = normalize_profile_key(raw_identifier)
        logger.info(f"Refreshing profile for {key}")
        return await self._fetch_and_store(key)

    async def _fetch_and_store(self, key: str) -> Profile:
        payload = await self.provider.fetch_user_info(key)

        if not is_successful_payload(payload):
            logger.error(f"TikTok API returned error or no user info for {key}")
            raise ProfileNotFoundError(key)

        try:
            profile = profile_from_payload(key, payload)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.error(f"TikTok API returned a malformed payload for {key}: {e}")
            raise UpstreamUnavailableError(
                self.provider.source_name, "malformed user info payload"
            ) from e

        await self.store.set(key, profile)
        logger.info(f"Cached data for {key}")
        return profile

    async def list_keys(self) -> List[str]:
        return await self.store.keys()

    async def count(self) -> int:
        return await self.store.count()

    async def purge_all(self) -> int:
        removed = await self.store.clear()
        logger.warning(f"Purged {removed} cached profiles")
        return removed

    async def cache_stats(self) -> Dict[str, Any]:
        keys = await self.store.keys()
        return {
            "totalEntries": len(keys),
            "cachedKeys": keys,
            "storageDescription": self.store.describe(),
            "freshnessWindowDays": self.freshness_window.days,
        }
