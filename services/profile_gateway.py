"""
Profile Data Gateway.

Turns a Discord account id into a NormalizedProfile, going to Discord only
when the in-process cache cannot answer.

Strategy:
1. Validate the id (17-20 ASCII digits), rejecting it before any other work.
2. Return a fresh cache entry if there is one. No upstream call is made.
3. Otherwise read the bot token from settings at call time and issue a single
   upstream request under an explicit deadline.
4. Normalize the payload, overwrite the cache entry and return it.

Concurrent misses for the same id share one in-flight upstream call, so a burst
of renders for a popular widget costs one Discord request. Nothing is retried:
any failure is raised to the caller as a WidgetAPIException.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from core.cache import CacheManager, MemoryCacheBackend, cache_key
from core.config import Settings, get_settings
from core.exceptions import ConfigurationError, UpstreamError, WidgetAPIException
from core.models import CACHE_HIT, CACHE_MISS, NormalizedProfile, ProfileLookup
from core.validation import validate_account_id
from providers.discord_provider import DiscordUserProvider, ProfileProvider
from services.profile_normalizer import normalize_profile

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_TTL_SECONDS = 600


class ProfileGateway:
    """Validate, cache and fetch Discord profiles"""

    def __init__(
        self,
        provider: Optional[ProfileProvider] = None,
        cache: Optional[CacheManager] = None,
        ttl_seconds: float = DEFAULT_PROFILE_TTL_SECONDS,
        settings_factory: Callable[[], Settings] = get_settings,
    ):
        if cache is None:
            cache = CacheManager(MemoryCacheBackend(default_ttl=ttl_seconds))
        self.provider = provider or DiscordUserProvider()
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self._settings_factory = settings_factory
        self._inflight: Dict[str, "asyncio.Future[NormalizedProfile]"] = {}

    async def get_profile(self, account_id: Optional[str]) -> ProfileLookup:
        """Return the normalized profile for `account_id` and its cache status"""
        validate_account_id(account_id)
        key = cache_key("profile", account_id)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for user {account_id}")
            return ProfileLookup(profile=cached, cache_status=CACHE_HIT)

        logger.debug(f"Cache miss for user {account_id}")
        profile = await self._fetch_once(account_id, key)
        return ProfileLookup(profile=profile, cache_status=CACHE_MISS)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def _fetch_once(self, account_id: str, key: str) -> NormalizedProfile:
        """Join the outstanding fetch for `account_id`, or start one"""
        future = self._inflight.get(account_id)
        if future is None:
            future = asyncio.ensure_future(self._fetch_and_store(account_id, key))
            self._inflight[account_id] = future

            def _release(done: "asyncio.Future[Any]") -> None:
                if self._inflight.get(account_id) is done:
                    del self._inflight[account_id]

            future.add_done_callback(_release)
        else:
            logger.debug(f"Joining in-flight fetch for user {account_id}")

        # A cancelled waiter must not cancel the fetch other waiters share.
        return await asyncio.shield(future)

    async def _fetch_and_store(self, account_id: str, key: str) -> NormalizedProfile:
        settings = self._settings_factory()
        token = settings.discord_bot_token
        if not token:
            logger.error("DISCORD_BOT_TOKEN is not configured")
            raise ConfigurationError(setting="DISCORD_BOT_TOKEN")

        timeout = settings.upstream_timeout_seconds
        logger.info(
            f"Fetching user {account_id} from {self.provider.source_name}",
            extra={"account_id": account_id, "timeout_seconds": timeout},
        )

        try:
            raw = await asyncio.wait_for(
                self.provider.fetch_user(account_id, token), timeout=timeout
            )
        except WidgetAPIException as e:
            logger.warning(
                f"Upstream lookup failed for user {account_id}: {e.message}",
                extra={"error_code": e.error_code, "status_code": e.status_code},
            )
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"Upstream lookup for user {account_id} timed out")
            raise UpstreamError(
                f"Discord API request timed out after {timeout:g}s"
            ) from e
        except Exception as e:
            logger.error(
                f"Unexpected error fetching user {account_id}: {e}", exc_info=True
            )
            raise UpstreamError(str(e) or type(e).__name__) from e

        profile = normalize_profile(raw)
        await self.cache.set(key, profile, ttl=self.ttl_seconds)
        return profile
