"""
Widget Configuration Encoder.

Maps a set of display options to the query string read by the widget
rendering page, and back. The same module computes the frame size for each
widget variant and renders the `<iframe>` snippet users paste into their sites.

Query contract:
- standard: id, theme, avatar, banner, nameplate, nameplate_animated, clan,
  decoration, global_name, size, ext
- compact: id, theme, nameplate, nameplate_animated

Encoding always emits fields in the order above so that generated embed code
is reproducible. Decoding accepts any order and falls back to the default for
any field that is missing or carries an unrecognised value.
"""

import html
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union
from urllib.parse import parse_qs, quote

from pydantic import BaseModel, ConfigDict

from core.validation import validate_account_id

# Characters left unescaped by JavaScript's encodeURIComponent
URI_COMPONENT_SAFE = "-_.!~*'()"

EMBED_TITLE = "User Widget"

STANDARD_WIDTH = 288
COMPACT_WIDTH = 289
BANNER_HEIGHT = 160
GLOBAL_NAME_HEIGHT = 80
BASE_HEIGHT = 64
COMPACT_HEIGHT = 48


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class AvatarSize(IntEnum):
    SIZE_64 = 64
    SIZE_128 = 128
    SIZE_256 = 256
    SIZE_512 = 512


class BannerFormat(str, Enum):
    AUTO = "auto"
    WEBP = "webp"
    PNG = "png"
    GIF = "gif"


class WidgetVariant(str, Enum):
    STANDARD = "standard"
    COMPACT = "compact"


class WidgetOptions(BaseModel):
    """Display toggles for one widget"""

    model_config = ConfigDict(frozen=True)

    theme: Theme = Theme.DARK
    show_avatar: bool = True
    show_banner: bool = True
    show_nameplate: bool = True
    animate_nameplate: bool = True
    show_clan_badge: bool = True
    show_avatar_decoration: bool = True
    show_global_name: bool = True
    avatar_size: AvatarSize = AvatarSize.SIZE_128
    banner_extension: BannerFormat = BannerFormat.AUTO
    variant: WidgetVariant = WidgetVariant.STANDARD

    @property
    def dimensions(self) -> Tuple[int, int]:
        return widget_dimensions(
            self.variant, self.show_banner, self.show_global_name
        )


# (query parameter, WidgetOptions attribute) in canonical order
STANDARD_FIELDS = (
    ("theme", "theme"),
    ("avatar", "show_avatar"),
    ("banner", "show_banner"),
    ("nameplate", "show_nameplate"),
    ("nameplate_animated", "animate_nameplate"),
    ("clan", "show_clan_badge"),
    ("decoration", "show_avatar_decoration"),
    ("global_name", "show_global_name"),
    ("size", "avatar_size"),
    ("ext", "banner_extension"),
)

COMPACT_FIELDS = (
    ("theme", "theme"),
    ("nameplate", "show_nameplate"),
    ("nameplate_animated", "animate_nameplate"),
)

RENDER_PATHS = {
    WidgetVariant.STANDARD: "/user",
    WidgetVariant.COMPACT: "/user/compact",
}


@dataclass(frozen=True)
class WidgetEmbed:
    url: str
    width: int
    height: int
    embed_code: str


def fields_for(variant: WidgetVariant) -> Tuple[Tuple[str, str], ...]:
    if variant == WidgetVariant.COMPACT:
        return COMPACT_FIELDS
    return STANDARD_FIELDS


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def encode_widget_query(options: WidgetOptions, account_id: str) -> str:
    """Build the canonical query string (without a leading '?')"""
    pairs = [("id", quote(account_id, safe=URI_COMPONENT_SAFE))]
    for name, attr in fields_for(options.variant):
        pairs.append((name, _format_value(getattr(options, attr))))
    return "&".join(f"{name}={value}" for name, value in pairs)


def _parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw == "true":
        return True
    if raw == "false":
        return False
    return default


def _parse_enum(enum_cls: Type[Enum], raw: Optional[str], default: Enum) -> Enum:
    for member in enum_cls:
        if raw == str(member.value):
            return member
    return default


def parse_variant(raw: Optional[str]) -> WidgetVariant:
    """Widget variant named by `raw`, or standard when it names none"""
    return _parse_enum(WidgetVariant, raw, WidgetVariant.STANDARD)


def decode_widget_query(
    query: Union[str, Mapping[str, str]],
    variant: WidgetVariant = WidgetVariant.STANDARD,
) -> Tuple[str, WidgetOptions]:
    """Parse a widget query string back into (account id, options).

    Only the fields belonging to `variant` are read; the rest keep their
    defaults. The account id is returned decoded but not validated.
    """
    if isinstance(query, str):
        parsed = parse_qs(query.lstrip("?"), keep_blank_values=True)
        params: Mapping[str, str] = {key: values[0] for key, values in parsed.items()}
    else:
        params = query

    defaults = WidgetOptions(variant=variant)
    values: Dict[str, Any] = {"variant": variant}
    for name, attr in fields_for(variant):
        raw = params.get(name)
        default = getattr(defaults, attr)
        if isinstance(default, bool):
            values[attr] = _parse_bool(raw, default)
        else:
            values[attr] = _parse_enum(type(default), raw, default)

    return params.get("id", ""), WidgetOptions(**values)


def widget_dimensions(
    variant: WidgetVariant, show_banner: bool, show_global_name: bool
) -> Tuple[int, int]:
    """Frame (width, height) matching what the rendering page draws"""
    if variant == WidgetVariant.COMPACT:
        return COMPACT_WIDTH, COMPACT_HEIGHT
    if show_banner:
        return STANDARD_WIDTH, BANNER_HEIGHT
    if show_global_name:
        return STANDARD_WIDTH, GLOBAL_NAME_HEIGHT
    return STANDARD_WIDTH, BASE_HEIGHT


def build_widget_url(base_url: str, options: WidgetOptions, account_id: str) -> str:
    path = RENDER_PATHS[options.variant]
    return f"{base_url.rstrip('/')}{path}?{encode_widget_query(options, account_id)}"


def build_embed_code(url: str, width: int, height: int) -> str:
    """Sandboxed iframe snippet; scripts allowed, same-origin access not.

    `url` is attribute-escaped, so query separators appear as `&amp;`.
    """
    return (
        "<iframe\n"
        f'  title="{EMBED_TITLE}"\n'
        f'  width="{width}"\n'
        f'  height="{height}"\n'
        '  frameborder="0"\n'
        '  sandbox="allow-scripts"\n'
        f'  src="{html.escape(url, quote=True)}"\n'
        "></iframe>"
    )


def build_widget_embed(
    base_url: str, options: WidgetOptions, account_id: str
) -> WidgetEmbed:
    """Validate the id and produce url, frame size and embed code together"""
    validate_account_id(account_id)
    url = build_widget_url(base_url, options, account_id)
    width, height = options.dimensions
    return WidgetEmbed(
        url=url,
        width=width,
        height=height,
        embed_code=build_embed_code(url, width, height),
    )
