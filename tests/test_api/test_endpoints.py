import pytest
from fastapi.testclient import TestClient

from main import app
from api.dependencies import get_profile_gateway
from core.config import Settings
from core.exceptions import (
    ProfileNotFoundError,
    UpstreamError,
    UpstreamUnauthorizedError,
)
from services.profile_gateway import ProfileGateway

ACCOUNT_ID = "80351110224678912"
INVALID_ID_BODY = {
    "error": "Invalid Discord user ID. Discord IDs are 17-20 digit numbers."
}


class TestUserEndpoint:
    """Test GET /api/user"""

    @pytest.mark.parametrize(
        "query",
        ["", "?id=", "?id=abc", "?id=1234567890123456", "?id=123456789012345678901"],
    )
    def test_invalid_id(self, test_client, mock_provider, query):
        response = test_client.get(f"/api/user{query}")

        assert response.status_code == 400
        assert response.json() == INVALID_ID_BODY
        mock_provider.fetch_user.assert_not_awaited()

    def test_miss_then_hit(self, test_client, mock_provider):
        first = test_client.get(f"/api/user?id={ACCOUNT_ID}")
        second = test_client.get(f"/api/user?id={ACCOUNT_ID}")

        assert first.status_code == 200
        assert first.headers["X-Cache"] == "MISS"
        assert first.headers["Cache-Control"] == "public, max-age=600"
        assert second.status_code == 200
        assert second.headers["X-Cache"] == "HIT"
        assert second.json() == first.json()
        assert mock_provider.fetch_user.await_count == 1

    def test_response_body(self, test_client):
        data = test_client.get(f"/api/user?id={ACCOUNT_ID}").json()

        assert data == {
            "id": ACCOUNT_ID,
            "username": "nelly",
            "avatar": "8342729096ea3675442027381ff50dfe",
            "discriminator": "0",
            "public_flags": 64,
            "flags": 64,
            "banner": "06c16474723fe537c283b8efa61a30c8",
            "accent_color": 16711680,
            "global_name": "Nelly",
            "avatar_decoration_asset": "a_d3da36040163ee0f9176dfe7ced45cdc",
            "nameplate_asset": "nameplates/nameplates_v3/bonsai/",
            "guild_id": "1234567890123456789",
            "clan_badge": "7d1734ae5a615e82bc7a4033b98fade8",
            "clan_tag": "NELL",
        }

    def test_optional_fields_serialize_as_null(self, test_client, mock_provider):
        mock_provider.fetch_user.return_value = {"id": ACCOUNT_ID, "username": "bare"}

        data = test_client.get(f"/api/user?id={ACCOUNT_ID}").json()

        assert data["banner"] is None
        assert data["clan_tag"] is None
        assert data["global_name"] == "bare"
        assert len(data) == 14

    @pytest.mark.parametrize(
        "error,status,message",
        [
            (
                ProfileNotFoundError(ACCOUNT_ID),
                404,
                "User not found. This Discord user does not exist or is not accessible.",
            ),
            (
                UpstreamUnauthorizedError(ACCOUNT_ID, 401),
                401,
                "Unauthorized. The bot token lacks permissions to fetch user data.",
            ),
            (
                UpstreamUnauthorizedError(ACCOUNT_ID, 403),
                403,
                "Unauthorized. The bot token lacks permissions to fetch user data.",
            ),
            (
                UpstreamError("Discord API error: 500 Internal Server Error", 500),
                500,
                "Discord API error: 500 Internal Server Error",
            ),
        ],
    )
    def test_upstream_errors(self, test_client, mock_provider, error, status, message):
        mock_provider.fetch_user.side_effect = error

        response = test_client.get(f"/api/user?id={ACCOUNT_ID}")

        assert response.status_code == status
        assert response.json() == {"error": message}
        assert "X-Cache" not in response.headers

    def test_network_failure_is_500(self, test_client, mock_provider):
        mock_provider.fetch_user.side_effect = OSError("Connection refused")

        response = test_client.get(f"/api/user?id={ACCOUNT_ID}")

        assert response.status_code == 500
        assert response.json() == {"error": "Connection refused"}

    def test_missing_token(self, mock_provider, cache_manager):
        settings = Settings(discord_bot_token="")
        gateway = ProfileGateway(
            provider=mock_provider,
            cache=cache_manager,
            settings_factory=lambda: settings,
        )
        app.dependency_overrides[get_profile_gateway] = lambda: gateway
        try:
            with TestClient(app) as client:
                response = client.get(f"/api/user?id={ACCOUNT_ID}")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {
            "error": "Discord bot token is not configured in environment variables"
        }
        mock_provider.fetch_user.assert_not_awaited()

    def test_correlation_id_echoed(self, test_client):
        response = test_client.get(
            f"/api/user?id={ACCOUNT_ID}", headers={"X-Correlation-ID": "corr-abc"}
        )
        assert response.headers["X-Correlation-ID"] == "corr-abc"

    def test_correlation_id_on_errors(self, test_client):
        response = test_client.get("/api/user?id=nope")

        assert response.status_code == 400
        assert response.headers["X-Correlation-ID"]
        assert "X-Process-Time" in response.headers


class TestWidgetEmbedEndpoint:
    """Test GET /api/widget/embed"""

    def test_standard_embed(self, test_client):
        response = test_client.get(
            f"/api/widget/embed?id={ACCOUNT_ID}&banner=false&global_name=true"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["width"] == 288
        assert data["height"] == 80
        assert data["url"] == (
            f"http://testserver/user?id={ACCOUNT_ID}&theme=dark&avatar=true"
            "&banner=false&nameplate=true&nameplate_animated=true&clan=true"
            "&decoration=true&global_name=true&size=128&ext=auto"
        )
        assert f'src="{data["url"].replace("&", "&amp;")}"' in data["embed_code"]
        assert 'sandbox="allow-scripts"' in data["embed_code"]

    def test_compact_embed(self, test_client):
        response = test_client.get(
            f"/api/widget/embed?variant=compact&id={ACCOUNT_ID}&banner=false"
        )

        assert response.status_code == 200
        data = response.json()
        assert (data["width"], data["height"]) == (289, 48)
        assert data["url"] == (
            f"http://testserver/user/compact?id={ACCOUNT_ID}&theme=dark"
            "&nameplate=true&nameplate_animated=true"
        )

    @pytest.mark.parametrize("variant", ["huge", ""])
    def test_unknown_variant_falls_back_to_standard(self, test_client, variant):
        response = test_client.get(
            f"/api/widget/embed?id={ACCOUNT_ID}&variant={variant}"
        )

        assert response.status_code == 200
        data = response.json()
        assert (data["width"], data["height"]) == (288, 160)
        assert data["url"].startswith(f"http://testserver/user?id={ACCOUNT_ID}&")

    def test_unknown_variant_with_bad_id_uses_error_body(self, test_client):
        response = test_client.get("/api/widget/embed?id=12&variant=huge")

        assert response.status_code == 400
        assert response.json() == INVALID_ID_BODY

    def test_embed_code_escapes_query_separators(self, test_client):
        data = test_client.get(f"/api/widget/embed?id={ACCOUNT_ID}").json()

        assert f'src="http://testserver/user?id={ACCOUNT_ID}&amp;theme=dark' in (
            data["embed_code"]
        )

    def test_options_in_any_order(self, test_client):
        response = test_client.get(
            f"/api/widget/embed?ext=png&size=256&theme=light&id={ACCOUNT_ID}"
        )

        url = response.json()["url"]
        assert url.endswith(
            "&theme=light&avatar=true&banner=true&nameplate=true"
            "&nameplate_animated=true&clan=true&decoration=true"
            "&global_name=true&size=256&ext=png"
        )

    def test_configured_base_url(self, test_client, monkeypatch):
        monkeypatch.setenv("WIDGET_BASE_URL", "https://widgets.example.com/")

        response = test_client.get(f"/api/widget/embed?id={ACCOUNT_ID}")

        assert response.json()["url"].startswith(
            f"https://widgets.example.com/user?id={ACCOUNT_ID}&"
        )

    @pytest.mark.parametrize("query", ["", "?id=12345", "?id=abcdefghijklmnopq"])
    def test_invalid_id(self, test_client, query):
        response = test_client.get(f"/api/widget/embed{query}")

        assert response.status_code == 400
        assert response.json() == INVALID_ID_BODY


class TestHealthEndpoints:
    """Test health and monitoring endpoints"""

    def test_healthcheck(self, test_client):
        response = test_client.get("/healthcheck")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "Discord Profile Widget API"

    def test_ping(self, test_client):
        response = test_client.get("/monitoring/ping")
        assert response.json()["message"] == "pong"

    def test_detailed(self, test_client):
        data = test_client.get("/monitoring/detailed").json()

        assert data["status"] == "healthy"
        assert data["components"]["cache"]["backend_type"] == "memory"

    def test_cache_stats(self, test_client):
        data = test_client.get("/monitoring/cache/stats").json()

        assert data["cache_stats"]["backend"] == "memory"
        assert "hit_rate" in data["cache_stats"]
