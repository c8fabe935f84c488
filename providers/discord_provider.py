"""
Discord Profile Provider

Fetches raw user objects from the Discord REST API. The provider knows how to
talk to Discord and how to translate its status codes into the API's
exception types; it knows nothing about caching or normalization.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp

from core.config import DEFAULT_DISCORD_API_BASE_URL
from core.exceptions import (
    ProfileNotFoundError,
    UpstreamError,
    UpstreamUnauthorizedError,
)

logger = logging.getLogger(__name__)


class ProfileProvider(ABC):
    """Abstract base class for upstream profile sources"""

    @abstractmethod
    async def fetch_user(self, account_id: str, token: str) -> Dict[str, Any]:
        """Return the raw upstream payload for `account_id`."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Source identifier for this provider"""


class DiscordUserProvider(ProfileProvider):
    """Fetch users from `GET /users/{id}` with a bot token"""

    def __init__(
        self,
        base_url: str = DEFAULT_DISCORD_API_BASE_URL,
        timeout_seconds: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @property
    def source_name(self) -> str:
        return "discord"

    def user_url(self, account_id: str) -> str:
        return f"{self.base_url}/users/{account_id}"

    async def fetch_user(self, account_id: str, token: str) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bot {token}",
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.get(self.user_url(account_id)) as response:
                status = response.status

                if status == 404:
                    raise ProfileNotFoundError(account_id)

                if status in (401, 403):
                    logger.warning(
                        f"Discord rejected bot token with {status} for user {account_id}"
                    )
                    raise UpstreamUnauthorizedError(account_id, status)

                if not 200 <= status < 300:
                    message = await self._read_error_message(response)
                    reason = f"Discord API error: {status}"
                    if message:
                        reason = f"{reason} {message}"
                    raise UpstreamError(reason, upstream_status=status)

                data = await response.json(content_type=None)

        if not isinstance(data, dict):
            raise UpstreamError(
                f"Discord API returned an unexpected payload type: {type(data).__name__}"
            )
        return data

    async def _read_error_message(self, response) -> Optional[str]:
        """Best-effort extraction of Discord's `message` field"""
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return None
