"""
Custom Exception Classes for the Profile Widget API.

Every failure the gateway can produce is expressed as a subclass of
`WidgetAPIException`. Each exception carries the human-readable message that is
returned to the caller, a stable error code for logs and monitoring, the HTTP
status it maps to, and an optional `details` dictionary.

Key Components:
- `WidgetAPIException`: Base class establishing the message / code / status
  structure.
- `InvalidAccountIdError`: The caller supplied a missing or malformed account id.
- `ProfileNotFoundError`: Discord reports the account does not exist or is not
  visible to the bot.
- `UpstreamUnauthorizedError`: Discord rejected the bot credential (401/403).
- `ConfigurationError`: The deployment is missing required configuration.
- `UpstreamError`: Any other upstream failure, including network errors and
  timeouts.
- `to_error_response`: Maps an exception to the `{"error": message}` JSON body.

None of these errors are retried internally; all of them are terminal for the
request that raised them.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

INVALID_ID_MESSAGE = "Invalid Discord user ID. Discord IDs are 17-20 digit numbers."
NOT_FOUND_MESSAGE = (
    "User not found. This Discord user does not exist or is not accessible."
)
UNAUTHORIZED_MESSAGE = (
    "Unauthorized. The bot token lacks permissions to fetch user data."
)
MISSING_TOKEN_MESSAGE = "Discord bot token is not configured in environment variables"


class WidgetAPIException(Exception):
    """Base exception class for the Profile Widget API"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "WIDGET_API_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidAccountIdError(WidgetAPIException):
    """Raised when an account id is absent or not a 17-20 digit string"""

    status_code = 400

    def __init__(self, value: Any = None):
        super().__init__(
            INVALID_ID_MESSAGE,
            "INVALID_ID",
            {"value": None if value is None else str(value)},
        )


class ProfileNotFoundError(WidgetAPIException):
    """Raised when Discord answers 404 for an account"""

    status_code = 404

    def __init__(self, account_id: str):
        super().__init__(NOT_FOUND_MESSAGE, "NOT_FOUND", {"account_id": account_id})


class UpstreamUnauthorizedError(WidgetAPIException):
    """Raised when Discord rejects the bot credential"""

    def __init__(self, account_id: str, upstream_status: int):
        super().__init__(
            UNAUTHORIZED_MESSAGE,
            "UNAUTHORIZED",
            {"account_id": account_id, "upstream_status": upstream_status},
            status_code=upstream_status,
        )


class ConfigurationError(WidgetAPIException):
    """Raised when required configuration is missing"""

    status_code = 500

    def __init__(self, message: str = MISSING_TOKEN_MESSAGE, setting: str = ""):
        super().__init__(message, "CONFIGURATION_ERROR", {"setting": setting})


class UpstreamError(WidgetAPIException):
    """Raised for unexpected upstream failures"""

    status_code = 500

    def __init__(self, reason: str, upstream_status: Optional[int] = None):
        details: Dict[str, Any] = {"reason": reason}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(reason, "UPSTREAM_ERROR", details)


def to_error_response(exc: WidgetAPIException) -> JSONResponse:
    """Convert a WidgetAPIException into the public JSON error response"""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
