"""Moderator command intake and player polling on top of the mailbox."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, settings
from services.catalog import get_clip_by_seq
from services.mailbox import (
    CommandKind,
    IssuedCommand,
    empty_poll_response,
    freshness_window,
    issue,
    poll_and_consume,
)
from services.state.base import RuntimeStateBackend
from services.votes import top_clips


SIMPLE_REPLIES = {
    CommandKind.SKIP: "Skipping current clip...",
    CommandKind.PREV: "Going back to previous clip...",
    CommandKind.SHUFFLE: "Shuffling clips...",
}


def _issued(command: IssuedCommand, reply: str) -> Dict[str, Any]:
    return {
        "issued": True,
        "kind": command.kind.value,
        "nonce": command.nonce,
        "reply": reply,
    }


def clamp_top_count(count: Any, app_settings: Settings = settings) -> int:
    low = int(app_settings.TOP_CLIPS_MIN)
    high = int(app_settings.TOP_CLIPS_MAX)
    try:
        value = int(count)
    except (TypeError, ValueError):
        value = high
    return max(low, min(high, value))


async def request_simple(
    backend: RuntimeStateBackend,
    channel: str,
    kind: CommandKind,
    *,
    app_settings: Settings = settings,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Skip, prev and shuffle carry no payload beyond the nonce."""
    if kind not in SIMPLE_REPLIES:
        raise ValueError(f"{kind.value} requires arguments")
    command = await issue(
        backend,
        channel,
        kind,
        window_seconds=freshness_window(kind, app_settings),
        now=now,
    )
    return _issued(command, SIMPLE_REPLIES[kind])


async def request_force_play(
    db: AsyncSession,
    backend: RuntimeStateBackend,
    channel: str,
    seq: Any,
    *,
    requested_by: Optional[str] = None,
    app_settings: Settings = settings,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Queue a specific clip. The payload snapshots the clip as looked up now."""
    clip = await get_clip_by_seq(db, channel, seq)
    payload = {
        "seq": clip["seq"],
        "clip_id": clip["clip_id"],
        "title": clip["title"],
        "duration": clip["duration"],
        "creator_name": clip["creator_name"],
        "thumbnail_url": clip["thumbnail_url"],
        "game_id": clip["game_id"],
        "platform": clip["platform"],
        "requested_by": requested_by,
    }
    command = await issue(
        backend,
        channel,
        CommandKind.FORCE_PLAY,
        payload,
        window_seconds=freshness_window(CommandKind.FORCE_PLAY, app_settings),
        now=now,
    )
    return _issued(command, f"Playing Clip #{clip['seq']}: {clip['title'] or '(untitled)'}")


async def request_top_clips(
    db: AsyncSession,
    backend: RuntimeStateBackend,
    channel: str,
    count: Any = None,
    *,
    app_settings: Settings = settings,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    limit = clamp_top_count(count, app_settings)
    if not await top_clips(db, channel, limit):
        return {"issued": False, "kind": CommandKind.TOP_CLIPS.value, "nonce": None, "reply": "No voted clips found."}
    command = await issue(
        backend,
        channel,
        CommandKind.TOP_CLIPS,
        {"count": limit},
        window_seconds=freshness_window(CommandKind.TOP_CLIPS, app_settings),
        now=now,
    )
    return _issued(command, f"Showing top {limit} clips...")


async def poll_command(
    db: AsyncSession,
    backend: RuntimeStateBackend,
    channel: str,
    kind: CommandKind,
    *,
    app_settings: Settings = settings,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Player poll. Always returns the same shape; `active` tells whether anything arrived."""
    command = await poll_and_consume(backend, channel, kind, now=now)
    if command is None:
        return empty_poll_response(kind)
    response = command.to_poll_response()
    if kind is CommandKind.TOP_CLIPS:
        limit = clamp_top_count(command.payload.get("count"), app_settings)
        response["payload"] = {"count": limit, "clips": await top_clips(db, channel, limit)}
    return response
