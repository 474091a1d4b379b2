import pytest
from unittest.mock import Mock, AsyncMock
from fastapi.testclient import TestClient
import os
import sys
from typing import Any, Dict, Generator, Optional

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import create_app
from core.cache import MemoryProfileStore
from core.config import Settings
from core.models import Participant
from services.profile_service import ProfileService


def build_user_info(
    unique_id: str = "ann1",
    nickname: Optional[str] = "Ann",
    with_bio_link: bool = True,
    status_code: int = 0,
    **user_overrides: Any,
) -> Dict[str, Any]:
    user = {
        "id": "6800000000000000001",
        "uniqueId": unique_id,
        "nickname": nickname,
        "avatarLarger": f"https://p16.example.com/{unique_id}/large.jpeg",
        "avatarMedium": f"https://p16.example.com/{unique_id}/medium.jpeg",
        "avatarThumb": f"https://p16.example.com/{unique_id}/thumb.jpeg",
        "signature": f"Hi, I am {nickname}",
        "verified": True,
    }
    if with_bio_link:
        user["bioLink"] = {"link": f"https://links.example.com/{unique_id}"}
    user.update(user_overrides)
    return {
        "statusCode": status_code,
        "status_code": status_code,
        "userInfo": {
            "stats": {
                "followerCount": 1200,
                "followingCount": 35,
                "heartCount": 56000,
                "videoCount": 42,
            },
            "user": user,
        },
    }


@pytest.fixture
def user_info_factory():
    """Build upstream user-info payloads"""
    return build_user_info


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        rapidapi_key="test-rapidapi-key",
        profile_store="memory",
        draw_duration_ms=50,
        draw_step_ms=10,
        environment="test",
    )


@pytest.fixture
def mock_provider():
    """Upstream provider that answers with a payload for whatever key it is asked"""

    async def fetch(key: str) -> Dict[str, Any]:
        return build_user_info(unique_id=key, nickname=key.title())

    provider = Mock()
    provider.source_name = "mock"
    provider.fetch_user_info = AsyncMock(side_effect=fetch)
    return provider


@pytest.fixture
def memory_store() -> MemoryProfileStore:
    return MemoryProfileStore()


@pytest.fixture
def profile_service(memory_store, mock_provider) -> ProfileService:
    return ProfileService(memory_store, mock_provider)


@pytest.fixture
def participants():
    return [
        Participant(name="Ann", username="ann1", id="1"),
        Participant(name="Bo", username="bo2", id="2"),
    ]


@pytest.fixture
def app(test_settings, memory_store, mock_provider):
    return create_app(settings=test_settings, store=memory_store, provider=mock_provider)


@pytest.fixture
def test_client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("RAPIDAPI_KEY", raising=False)
