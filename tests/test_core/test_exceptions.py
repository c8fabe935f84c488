import json

from core.exceptions import (
    ConfigurationError,
    InvalidAccountIdError,
    ProfileNotFoundError,
    UpstreamError,
    UpstreamUnauthorizedError,
    WidgetAPIException,
    to_error_response,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_invalid_account_id_error(self):
        error = InvalidAccountIdError("abc")
        assert str(error) == (
            "Invalid Discord user ID. Discord IDs are 17-20 digit numbers."
        )
        assert error.status_code == 400
        assert error.error_code == "INVALID_ID"

    def test_profile_not_found_error(self):
        error = ProfileNotFoundError("80351110224678912")
        assert error.message == (
            "User not found. This Discord user does not exist or is not accessible."
        )
        assert error.status_code == 404
        assert error.error_code == "NOT_FOUND"
        assert error.details == {"account_id": "80351110224678912"}

    def test_unauthorized_error_mirrors_upstream_status(self):
        unauthorized = UpstreamUnauthorizedError("80351110224678912", 401)
        forbidden = UpstreamUnauthorizedError("80351110224678912", 403)

        assert unauthorized.status_code == 401
        assert forbidden.status_code == 403
        assert forbidden.message == (
            "Unauthorized. The bot token lacks permissions to fetch user data."
        )
        assert forbidden.error_code == "UNAUTHORIZED"

    def test_unauthorized_status_does_not_leak_to_class(self):
        UpstreamUnauthorizedError("80351110224678912", 403)
        assert UpstreamUnauthorizedError.status_code == 500

    def test_configuration_error(self):
        error = ConfigurationError(setting="DISCORD_BOT_TOKEN")
        assert error.status_code == 500
        assert error.error_code == "CONFIGURATION_ERROR"
        assert "bot token is not configured" in error.message

    def test_upstream_error(self):
        error = UpstreamError("Discord API error: 502", upstream_status=502)
        assert error.status_code == 500
        assert error.error_code == "UPSTREAM_ERROR"
        assert error.details == {
            "reason": "Discord API error: 502",
            "upstream_status": 502,
        }

    def test_all_errors_share_base_class(self):
        for error in (
            InvalidAccountIdError(),
            ProfileNotFoundError("1"),
            UpstreamUnauthorizedError("1", 401),
            ConfigurationError(),
            UpstreamError("boom"),
        ):
            assert isinstance(error, WidgetAPIException)


class TestToErrorResponse:
    """Test to_error_response function."""

    def test_body_is_error_message_only(self):
        response = to_error_response(ProfileNotFoundError("80351110224678912"))

        assert response.status_code == 404
        assert json.loads(response.body) == {
            "error": "User not found. This Discord user does not exist or is not accessible."
        }

    def test_uses_instance_status(self):
        response = to_error_response(UpstreamUnauthorizedError("1", 403))
        assert response.status_code == 403
