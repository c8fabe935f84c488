"""
Core data models for the Profile Widget API

Defines NormalizedProfile, the only profile shape the API exposes, and
ProfileLookup, which pairs a profile with how it was obtained.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


class NormalizedProfile(BaseModel):
    """
    Stable representation of a Discord user.

    Every field is always present; `None` (JSON null) means "no value".
    """

    id: str
    username: str
    avatar: Optional[str]
    discriminator: str
    public_flags: int
    flags: int
    banner: Optional[str]
    accent_color: Optional[int]
    global_name: str
    avatar_decoration_asset: Optional[str]
    nameplate_asset: Optional[str]
    guild_id: Optional[str]
    clan_badge: Optional[str]
    clan_tag: Optional[str]


@dataclass(frozen=True)
class ProfileLookup:
    """Result of a gateway lookup: the profile and whether it came from cache"""

    profile: NormalizedProfile
    cache_status: str

    @property
    def from_cache(self) -> bool:
        return self.cache_status == CACHE_HIT
