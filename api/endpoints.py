"""
API Endpoints for the Profile Widget.

Endpoints Provided:
- `GET /api/user?id=<digits>`: normalized Discord profile for the widget
  rendering page. Successful responses carry `Cache-Control: public,
  max-age=600` for intermediaries and `X-Cache: HIT|MISS` describing the
  in-process cache.
- `GET /api/widget/embed?id=<digits>&<options>`: the widget URL, frame size and
  `<iframe>` snippet for a set of display options. Options use the same query
  contract as the rendering page and may appear in any order.

Errors are raised as `WidgetAPIException` subclasses and turned into
`{"error": message}` responses by `ErrorHandlingMiddleware`.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import get_settings
from core.logging_config import log_function_call
from services.profile_gateway import ProfileGateway
from services.widget_encoder import (
    build_widget_embed,
    decode_widget_query,
    parse_variant,
)
from .dependencies import get_profile_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Profile Widget"])

PUBLIC_CACHE_CONTROL = "public, max-age=600"


class EmbedResponse(BaseModel):
    url: str
    width: int
    height: int
    embed_code: str


@router.get("/user")
@log_function_call(logger)
async def get_user(
    account_id: Optional[str] = Query(default=None, alias="id"),
    gateway: ProfileGateway = Depends(get_profile_gateway),
):
    """Return the normalized profile for a Discord user id"""
    lookup = await gateway.get_profile(account_id)

    return JSONResponse(
        content=lookup.profile.model_dump(),
        headers={
            "Cache-Control": PUBLIC_CACHE_CONTROL,
            "X-Cache": lookup.cache_status,
        },
    )


@router.get("/widget/embed", response_model=EmbedResponse)
async def get_widget_embed(
    request: Request,
    variant: Optional[str] = Query(default=None),
):
    """Build the embed snippet for the options in the query string"""
    widget_variant = parse_variant(variant)
    account_id, options = decode_widget_query(
        dict(request.query_params), variant=widget_variant
    )
    base_url = get_settings().widget_base_url or str(request.base_url)

    embed = build_widget_embed(base_url, options, account_id)
    logger.info(
        f"Built {widget_variant.value} embed for user {account_id}",
        extra={"width": embed.width, "height": embed.height},
    )
    return EmbedResponse(
        url=embed.url,
        width=embed.width,
        height=embed.height,
        embed_code=embed.embed_code,
    )
