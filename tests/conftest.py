import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator
from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient

from main import app
from api.dependencies import get_profile_gateway
from core.cache import CacheManager, MemoryCacheBackend
from core.config import Settings
from services.profile_gateway import ProfileGateway

ACCOUNT_ID = "80351110224678912"


class FakeClock:
    """Controllable clock for TTL tests"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "test-bot-token")
    monkeypatch.delenv("WIDGET_BASE_URL", raising=False)
    monkeypatch.delenv("DISCORD_API_BASE_URL", raising=False)


@pytest.fixture
def sample_raw_user():
    """Discord `GET /users/{id}` payload with every optional object present."""
    return {
        "id": ACCOUNT_ID,
        "username": "nelly",
        "avatar": "8342729096ea3675442027381ff50dfe",
        "discriminator": "0",
        "public_flags": 64,
        "flags": 64,
        "banner": "06c16474723fe537c283b8efa61a30c8",
        "accent_color": 16711680,
        "global_name": "Nelly",
        "avatar_decoration_data": {
            "asset": "a_d3da36040163ee0f9176dfe7ced45cdc",
            "sku_id": "1144058522808614923",
            "expires_at": None,
        },
        "collectibles": {
            "nameplate": {
                "sku_id": "1349486948942745691",
                "asset": "nameplates/nameplates_v3/bonsai/",
                "label": "Bonsai",
                "palette": "emerald",
            }
        },
        "banner_color": "#ff0000",
        "clan": {
            "identity_guild_id": "1234567890123456789",
            "identity_enabled": True,
            "tag": "NELL",
            "badge": "7d1734ae5a615e82bc7a4033b98fade8",
        },
        "primary_guild": {
            "identity_guild_id": "9876543210987654321",
            "identity_enabled": True,
            "tag": "OLD",
            "badge": "00000000000000000000000000000000",
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_manager(clock):
    """Memory-backed cache driven by the fake clock."""
    return CacheManager(MemoryCacheBackend(max_size=100, default_ttl=600, clock=clock))


@pytest.fixture
def mock_provider(sample_raw_user):
    """Upstream provider that returns the sample user."""
    provider = Mock()
    provider.source_name = "discord"
    provider.fetch_user = AsyncMock(return_value=sample_raw_user)
    return provider


@pytest.fixture
def settings():
    return Settings(discord_bot_token="test-bot-token", upstream_timeout_seconds=5)


@pytest.fixture
def gateway(mock_provider, cache_manager, settings):
    return ProfileGateway(
        provider=mock_provider,
        cache=cache_manager,
        ttl_seconds=600,
        settings_factory=lambda: settings,
    )


@pytest.fixture
def test_client(gateway) -> Generator[TestClient, None, None]:
    """Create a test client whose routes use the test gateway."""
    app.dependency_overrides[get_profile_gateway] = lambda: gateway
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
