"""
Router for moderator commands (plain-text replies for the chat bot)
and the player-side mailbox poll.
"""

import logging
from typing import Any, Awaitable, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db
from routers.dependencies import ModeratorContext, channel_scope, get_state_backend, require_admin_key
from routers.rate_limit import rate_limit
from services.commands import (
    SIMPLE_REPLIES,
    poll_command,
    request_force_play,
    request_simple,
    request_top_clips,
)
from services.errors import CatalogError, StoreUnavailableError, ValidationError
from services.mailbox import parse_kind
from services.state import RuntimeStateBackend

router = APIRouter()
logger = logging.getLogger(__name__)

moderator_rate_limit = rate_limit("commands", limit=30, window_seconds=60)


async def reply_text(call: Awaitable[Dict[str, Any]]) -> PlainTextResponse:
    """Render a command outcome, or its domain error, as a chat-friendly line."""
    try:
        outcome = await call
    except StoreUnavailableError:
        raise
    except CatalogError as exc:
        return PlainTextResponse(str(exc))
    return PlainTextResponse(outcome["reply"])


@router.post("/{channel}/force-play/{seq}", dependencies=[Depends(moderator_rate_limit)])
async def force_play(
    seq: int,
    channel: str = Depends(channel_scope),
    moderator: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    return await reply_text(
        request_force_play(
            db,
            backend,
            channel,
            seq,
            requested_by=moderator.moderator,
            app_settings=app_settings,
        )
    )


@router.post("/{channel}/top", dependencies=[Depends(moderator_rate_limit)])
async def show_top_clips(
    count: int = 5,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    return await reply_text(request_top_clips(db, backend, channel, count, app_settings=app_settings))


@router.post("/{channel}/{kind}", dependencies=[Depends(moderator_rate_limit)])
async def simple_command(
    kind: str,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
):
    """skip, prev and shuffle."""
    try:
        command_kind = parse_kind(kind)
    except ValidationError as exc:
        return PlainTextResponse(str(exc))
    if command_kind not in SIMPLE_REPLIES:
        return PlainTextResponse(f"Use the dedicated endpoint for {command_kind.value}.")
    return await reply_text(request_simple(backend, channel, command_kind, app_settings=app_settings))


@router.get("/{channel}/{kind}/poll")
async def poll(
    kind: str,
    channel: str = Depends(channel_scope),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """At most one poller receives each command; everyone else gets `active: false`."""
    return await poll_command(db, backend, channel, parse_kind(kind), app_settings=app_settings)
