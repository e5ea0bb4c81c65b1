"""Now-playing register with implicit controller election."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from services.catalog import find_clip_by_platform_id
from services.common import isoformat, utcnow
from services.controller import (
    ControllerState,
    next_ownership,
    resolve_controller_state,
    should_take_over,
)
from services.errors import ValidationError
from services.mailbox import CommandKind
from services.state.base import Record, RuntimeStateBackend


logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 30


def _timeout(timeout_seconds: Optional[int]) -> timedelta:
    seconds = settings.CONTROLLER_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
    return timedelta(seconds=max(int(seconds), 1))


def _no_state(now: datetime) -> Dict[str, Any]:
    return {
        "has_state": False,
        "clip_id": None,
        "seq": None,
        "title": None,
        "duration": None,
        "started_at": None,
        "elapsed": None,
        "current_position": None,
        "ended": False,
        "playlist_index": None,
        "playlist_ids": None,
        "controller_id": None,
        "controller_state": ControllerState.UNCLAIMED.value,
        "should_take_over": True,
        "server_time": isoformat(now),
    }


def build_view(record: Optional[Record], now: datetime, timeout: timedelta) -> Dict[str, Any]:
    if record is None:
        return _no_state(now)
    duration = int(record.get("duration") or DEFAULT_DURATION_SECONDS)
    started_at = record["started_at"]
    elapsed = max((now - started_at).total_seconds(), 0.0)
    state = resolve_controller_state(now, record.get("updated_at"), record.get("contested_at"), timeout)
    return {
        "has_state": True,
        "clip_id": record.get("clip_id"),
        "seq": record.get("seq"),
        "title": record.get("title"),
        "duration": duration,
        "started_at": isoformat(started_at),
        "elapsed": round(elapsed, 3),
        "current_position": round(min(elapsed, float(duration)), 3),
        "ended": elapsed >= duration,
        "playlist_index": record.get("playlist_index"),
        "playlist_ids": record.get("playlist_ids"),
        "controller_id": record.get("controller_id"),
        "controller_state": state.value,
        "should_take_over": should_take_over(now, record.get("updated_at"), timeout),
        "server_time": isoformat(now),
    }


async def set_now_playing(
    db: AsyncSession,
    backend: RuntimeStateBackend,
    channel: str,
    clip_id: Any,
    *,
    seq: Optional[int] = None,
    title: Optional[str] = None,
    duration: Optional[int] = None,
    controller_id: Optional[str] = None,
    playlist_index: Optional[int] = None,
    playlist_ids: Optional[List[str]] = None,
    now: Optional[datetime] = None,
    timeout_seconds: Optional[int] = None,
) -> Dict[str, Any]:
    """Overwrite the channel's register and restart its clock. Last writer wins."""
    clip_id = str(clip_id or "").strip()
    if not clip_id:
        raise ValidationError("clip_id is required.")
    if duration is not None and int(duration) <= 0:
        raise ValidationError("duration must be a positive number of seconds.")

    if seq is None or title is None or duration is None:
        clip = await find_clip_by_platform_id(db, channel, clip_id)
        if clip is not None:
            seq = clip.seq if seq is None else seq
            title = clip.title if title is None else title
            duration = clip.duration_seconds if duration is None else duration

    current = now or utcnow()
    timeout = _timeout(timeout_seconds)
    previous = await backend.read_now_playing(channel) or {}
    started_at = current
    if previous.get("started_at") and previous["started_at"] > started_at:
        started_at = previous["started_at"]

    ownership = next_ownership(
        current,
        previous.get("controller_id"),
        previous.get("updated_at"),
        previous.get("contested_at"),
        controller_id,
        timeout,
    )
    if ownership.contested_at == current:
        logger.info(
            "Controller for %s changed from %s to %s while the previous one was live",
            channel,
            previous.get("controller_id"),
            controller_id,
        )

    record = {
        "clip_id": clip_id,
        "seq": seq,
        "title": title,
        "duration": int(duration or DEFAULT_DURATION_SECONDS),
        "started_at": started_at,
        "updated_at": current,
        "controller_id": ownership.controller_id,
        "contested_at": ownership.contested_at,
        "playlist_index": playlist_index,
        "playlist_ids": list(playlist_ids) if playlist_ids is not None else None,
    }
    await backend.write_now_playing(channel, record)
    return build_view(record, current, timeout)


async def get_now_playing(
    backend: RuntimeStateBackend,
    channel: str,
    *,
    now: Optional[datetime] = None,
    timeout_seconds: Optional[int] = None,
) -> Dict[str, Any]:
    record = await backend.read_now_playing(channel)
    return build_view(record, now or utcnow(), _timeout(timeout_seconds))


async def heartbeat(
    backend: RuntimeStateBackend,
    channel: str,
    controller_id: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    timeout_seconds: Optional[int] = None,
) -> Dict[str, Any]:
    """Refresh the controller heartbeat without touching the playing clip."""
    current = now or utcnow()
    timeout = _timeout(timeout_seconds)
    record = await backend.read_now_playing(channel)
    if record is None:
        return {"ok": False, **_no_state(current)}
    ownership = next_ownership(
        current,
        record.get("controller_id"),
        record.get("updated_at"),
        record.get("contested_at"),
        controller_id,
        timeout,
    )
    touched = await backend.touch_now_playing(
        channel,
        updated_at=current,
        controller_id=ownership.controller_id,
        contested_at=ownership.contested_at,
    )
    if not touched:
        return {"ok": False, **_no_state(current)}
    record.update(
        updated_at=current,
        controller_id=ownership.controller_id,
        contested_at=ownership.contested_at,
    )
    return {"ok": True, **build_view(record, current, timeout)}


async def clear_playback_state(backend: RuntimeStateBackend, channel: str) -> Dict[str, Any]:
    """Forget the playing clip, any pending force-play and the category filter."""
    await backend.delete_now_playing(channel)
    await backend.delete_command(channel, CommandKind.FORCE_PLAY.value)
    await backend.delete_filter(channel)
    logger.info("Cleared playback state for %s", channel)
    return {"cleared": True, "channel": channel}
