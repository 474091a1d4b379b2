"""
Profile Provider Classes

Upstream clients that fetch raw user-info payloads for a TikTok username.
Providers only talk to the network; normalizing the payload into a `Profile`
and caching it is the job of `services.profile_service.ProfileService`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import aiohttp
from core.exceptions import (
    ConfigurationError,
    ProfileNotFoundError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


class ProfileProvider(ABC):
    """Abstract base class for user-info upstreams"""

    @abstractmethod
    async def fetch_user_info(self, key: str) -> Dict[str, Any]:
        """Fetch the raw payload for a normalized username. One request, no retry."""
        pass

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Source identifier for this provider"""
        pass


class TikTokUserInfoProvider(ProfileProvider):
    """TikTok user info through the RapidAPI `tiktok-api23` endpoint"""

    USER_INFO_PATH = "/api/user/info"

    def __init__(
        self,
        api_key: Optional[str],
        api_host: str = "tiktok-api23.p.rapidapi.com",
        timeout_seconds: float = 10,
    ):
        self.api_key = api_key
        self.api_host = api_host
        self.timeout_seconds = timeout_seconds

    @property
    def source_name(self) -> str:
        return "rapidapi"

    @property
    def url(self) -> str:
        return f"https://{self.api_host}{self.USER_INFO_PATH}"

    async def fetch_user_info(self, key: str) -> Dict[str, Any]:
        if not self.api_key:
            logger.error("RAPIDAPI_KEY environment variable is not set")
            raise ConfigurationError("RAPIDAPI_KEY")

        headers = {
            "x-rapidapi-host": self.api_host,
            "x-rapidapi-key": self.api_key,
        }
        logger.info(f"Fetching fresh data for {key} from TikTok API")

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(
                    self.url, params={"uniqueId": key}, headers=headers
                ) as response:
                    status = response.status
                    if status == 404:
                        raise ProfileNotFoundError(key, "upstream returned 404")
                    if status < 200 or status >= 300:
                        logger.error(f"TikTok API error: {status} {response.reason}")
                        raise UpstreamUnavailableError(
                            self.source_name, f"HTTP {status}", upstream_status=status
                        )
                    payload = await response.json(content_type=None)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"TikTok API request failed for {key}: {e!r}")
            raise UpstreamUnavailableError(
                self.source_name, str(e) or type(e).__name__
            ) from e
        except ValueError as e:
            # Body was not valid JSON
            raise UpstreamUnavailableError(self.source_name, "invalid JSON body") from e

        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(self.source_name, "unexpected payload type")
        return payload
