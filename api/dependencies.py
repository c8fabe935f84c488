from typing import Optional

from core.cache import CacheManager, get_cache
from core.config import get_settings
from providers.discord_provider import DiscordUserProvider
from services.profile_gateway import ProfileGateway

profile_gateway: Optional[ProfileGateway] = None


def init_profile_gateway(cache: Optional[CacheManager] = None) -> ProfileGateway:
    """Build the process-wide gateway from current settings"""
    global profile_gateway
    settings = get_settings()
    profile_gateway = ProfileGateway(
        provider=DiscordUserProvider(
            base_url=settings.discord_api_base_url,
            timeout_seconds=settings.upstream_timeout_seconds,
        ),
        cache=cache or get_cache(),
        ttl_seconds=settings.profile_cache_ttl_seconds,
    )
    return profile_gateway


def get_profile_gateway() -> ProfileGateway:
    if profile_gateway is None:
        return init_profile_gateway()
    return profile_gateway
