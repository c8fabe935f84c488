"""Discord user JSON to NormalizedProfile mapper."""

from typing import Any, Mapping, Optional

from core.models import NormalizedProfile


def _nested(data: Any, *path: str) -> Any:
    """Walk `path` through nested mappings, returning None on any gap."""
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _text(value: Any) -> Optional[str]:
    """Non-empty string or None. Snowflakes sent as numbers become text."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        text = str(value)
        return text or None
    return None


def _integer(value: Any, default: Optional[int]) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value


def _group_field(data: Mapping[str, Any], field: str) -> Optional[str]:
    """Read a group-affiliation field, preferring `clan` over `primary_guild`."""
    return _text(_nested(data, "clan", field)) or _text(
        _nested(data, "primary_guild", field)
    )


def normalize_profile(data: Any) -> NormalizedProfile:
    """Convert a Discord API user object into a NormalizedProfile.

    Total over any input: missing or malformed optional data degrades to None
    and never raises.

    Args:
        data: Raw user object from Discord's `GET /users/{id}`

    Returns:
        NormalizedProfile with every field present
    """
    if not isinstance(data, Mapping):
        data = {}

    username = _text(data.get("username")) or ""

    return NormalizedProfile(
        id=_text(data.get("id")) or "",
        username=username,
        avatar=_text(data.get("avatar")),
        discriminator=_text(data.get("discriminator")) or "0",
        public_flags=_integer(data.get("public_flags"), 0),
        flags=_integer(data.get("flags"), 0),
        banner=_text(data.get("banner")),
        # 0 (black) is a real colour and stays 0; earlier versions of the
        # widget collapsed it to null with a falsy check.
        accent_color=_integer(data.get("accent_color"), None),
        global_name=_text(data.get("global_name")) or username,
        avatar_decoration_asset=_text(_nested(data, "avatar_decoration_data", "asset")),
        nameplate_asset=_text(_nested(data, "collectibles", "nameplate", "asset")),
        guild_id=_group_field(data, "identity_guild_id"),
        clan_badge=_group_field(data, "badge"),
        clan_tag=_group_field(data, "tag"),
    )
