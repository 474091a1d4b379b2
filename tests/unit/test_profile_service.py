"""
Unit tests for ProfileService

The upstream provider is mocked; the store is the in-memory backend.
"""
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock
from core.exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    ProfileNotFoundError,
    UpstreamUnavailableError,
)
from core.models import DEFAULT_BIO
from services.profile_service import (
    ProfileService,
    is_successful_payload,
    profile_from_payload,
)


class TestGetProfile:
    """Cache-through lookups"""

    @pytest.mark.asyncio
    async def test_cold_cache_fetches_once_and_stores(self, profile_service, mock_provider):
        profile = await profile_service.get_profile("ann1")

        assert profile.username == "@ann1"
        assert profile.display_name == "Ann1"
        mock_provider.fetch_user_info.assert_awaited_once_with("ann1")
        assert await profile_service.count() == 1

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(self, profile_service, mock_provider):
        first = await profile_service.get_profile("ann1")
        second = await profile_service.get_profile("ann1")

        assert mock_provider.fetch_user_info.await_count == 1
        assert second == first
        assert second.model_dump_json() == first.model_dump_json()

    @pytest.mark.asyncio
    async def test_lookup_reports_cache_hit(self, profile_service):
        _, hit = await profile_service.lookup_profile("ann1")
        assert hit is False
        _, hit = await profile_service.lookup_profile("ann1")
        assert hit is True

    @pytest.mark.asyncio
    async def test_identifier_spellings_share_one_entry(self, profile_service, mock_provider):
        await profile_service.get_profile("@Foo")
        await profile_service.get_profile("foo")
        await profile_service.get_profile("  @FOO ")

        mock_provider.fetch_user_info.assert_awaited_once_with("foo")
        assert await profile_service.list_keys() == ["foo"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", ["", "@", "   ", "@@"])
    async def test_empty_identifier_rejected_before_io(
        self, profile_service, mock_provider, identifier
    ):
        with pytest.raises(InvalidArgumentError):
            await profile_service.get_profile(identifier)
        mock_provider.fetch_user_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_status_is_not_found_and_not_stored(
        self, profile_service, mock_provider, user_info_factory
    ):
        mock_provider.fetch_user_info = AsyncMock(
            return_value=user_info_factory(status_code=10221)
        )

        with pytest.raises(ProfileNotFoundError) as exc_info:
            await profile_service.get_profile("ghost")

        assert exc_info.value.details["username"] == "ghost"
        assert await profile_service.count() == 0

    @pytest.mark.asyncio
    async def test_missing_user_info_is_not_found(self, profile_service, mock_provider):
        mock_provider.fetch_user_info = AsyncMock(return_value={"status_code": 0})

        with pytest.raises(ProfileNotFoundError):
            await profile_service.get_profile("ghost")
        assert await profile_service.count() == 0

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates_without_store_write(
        self, profile_service, mock_provider
    ):
        mock_provider.fetch_user_info = AsyncMock(
            side_effect=UpstreamUnavailableError("rapidapi", "timeout")
        )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await profile_service.get_profile("ann1")

        assert exc_info.value.retryable is True
        assert await profile_service.count() == 0

    @pytest.mark.asyncio
    async def test_non_string_nickname_is_upstream_unavailable(
        self, profile_service, mock_provider, user_info_factory
    ):
        mock_provider.fetch_user_info = AsyncMock(
            return_value=user_info_factory(nickname=12345)
        )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await profile_service.get_profile("ann1")

        assert exc_info.value.details["reason"] == "malformed user info payload"
        assert await profile_service.count() == 0

    @pytest.mark.asyncio
    async def test_stats_of_wrong_type_is_upstream_unavailable(
        self, profile_service, mock_provider, user_info_factory
    ):
        payload = user_info_factory()
        payload["userInfo"]["stats"] = ["x"]
        mock_provider.fetch_user_info = AsyncMock(return_value=payload)

        with pytest.raises(UpstreamUnavailableError):
            await profile_service.get_profile("ann1")
        assert await profile_service.count() == 0

    @pytest.mark.asyncio
    async def test_no_retry_after_failure(self, profile_service, mock_provider):
        mock_provider.fetch_user_info = AsyncMock(
            side_effect=UpstreamUnavailableError("rapidapi", "reset")
        )

        with pytest.raises(UpstreamUnavailableError):
            await profile_service.get_profile("ann1")
        assert mock_provider.fetch_user_info.await_count == 1

    @pytest.mark.asyncio
    async def test_cached_profile_served_without_credentials(
        self, profile_service, mock_provider
    ):
        await profile_service.get_profile("ann1")
        mock_provider.fetch_user_info = AsyncMock(
            side_effect=ConfigurationError("RAPIDAPI_KEY")
        )

        profile = await profile_service.get_profile("@ANN1")
        assert profile.username == "@ann1"

        with pytest.raises(ConfigurationError):
            await profile_service.get_profile("bo2")

    @pytest.mark.asyncio
    async def test_concurrent_lookups_for_different_keys(self, profile_service):
        profiles = await asyncio.gather(
            *(profile_service.get_profile(f"user{i}") for i in range(10))
        )

        assert [p.username for p in profiles] == [f"@user{i}" for i in range(10)]
        assert await profile_service.count() == 10


class TestRefreshAndPurge:
    @pytest.mark.asyncio
    async def test_refresh_overwrites_entry(
        self, profile_service, mock_provider, user_info_factory
    ):
        original = await profile_service.get_profile("ann1")
        mock_provider.fetch_user_info = AsyncMock(
            return_value=user_info_factory(unique_id="ann1", nickname="Ann Renamed")
        )

        refreshed = await profile_service.refresh_profile("@Ann1")

        assert refreshed.display_name == "Ann Renamed"
        assert refreshed.cached_at >= original.cached_at
        assert original.display_name == "Ann1"
        assert await profile_service.get_profile("ann1") == refreshed
        assert await profile_service.count() == 1

    @pytest.mark.asyncio
    async def test_purge_all_then_count_is_zero(self, profile_service):
        for name in ("ann1", "bo2", "cy3"):
            await profile_service.get_profile(name)

        removed = await profile_service.purge_all()

        assert removed == 3
        assert await profile_service.count() == 0
        assert await profile_service.list_keys() == []

    @pytest.mark.asyncio
    async def test_lookup_after_purge_fetches_again(self, profile_service, mock_provider):
        await profile_service.get_profile("ann1")
        await profile_service.purge_all()
        await profile_service.get_profile("ann1")

        assert mock_provider.fetch_user_info.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_stats(self, memory_store, mock_provider):
        service = ProfileService(
            memory_store, mock_provider, freshness_window=timedelta(days=7)
        )
        await service.get_profile("bo2")
        await service.get_profile("ann1")

        stats = await service.cache_stats()

        assert stats == {
            "totalEntries": 2,
            "cachedKeys": ["ann1", "bo2"],
            "storageDescription": "memory",
            "freshnessWindowDays": 7,
        }


class TestPayloadMapping:
    """Upstream payload to Profile"""

    def test_full_payload(self, user_info_factory):
        profile = profile_from_payload("ann1", user_info_factory())

        assert profile.username == "@ann1"
        assert profile.display_name == "Ann"
        assert profile.follower_count == 1200
        assert profile.likes_count == 56000
        assert profile.video_count == 42
        assert profile.verified is True
        assert profile.avatar_url == "https://p16.example.com/ann1/medium.jpeg"
        assert profile.bio == "Hi, I am Ann"
        assert profile.bio_link == "https://links.example.com/ann1"

    def test_missing_bio_link_is_absent_not_error(self, user_info_factory):
        profile = profile_from_payload("ann1", user_info_factory(with_bio_link=False))
        assert profile.bio_link is None

    def test_avatar_falls_back_to_thumbnail(self, user_info_factory):
        profile = profile_from_payload("ann1", user_info_factory(avatarMedium=""))
        assert profile.avatar_url == "https://p16.example.com/ann1/thumb.jpeg"

    def test_empty_signature_uses_placeholder(self, user_info_factory):
        profile = profile_from_payload("ann1", user_info_factory(signature=""))
        assert profile.bio == DEFAULT_BIO

    def test_missing_numbers_are_zero(self, user_info_factory):
        payload = user_info_factory()
        payload["userInfo"]["stats"] = {"followerCount": None}

        profile = profile_from_payload("ann1", payload)

        assert profile.follower_count == 0
        assert profile.likes_count == 0
        assert profile.video_count == 0

    def test_success_check(self, user_info_factory):
        assert is_successful_payload(user_info_factory()) is True
        assert is_successful_payload(user_info_factory(status_code=1)) is False
        assert is_successful_payload(user_info_factory(nickname=None)) is False
        assert is_successful_payload({"statusCode": 0, "userInfo": None}) is False

    def test_profile_is_immutable(self, user_info_factory):
        profile = profile_from_payload("ann1", user_info_factory())
        with pytest.raises(Exception):
            profile.display_name = "changed"
