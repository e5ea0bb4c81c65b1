"""
Router for the now-playing register polled by player instances.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db
from routers.dependencies import channel_scope, get_state_backend
from services.now_playing import clear_playback_state, get_now_playing, heartbeat, set_now_playing
from services.state import RuntimeStateBackend

router = APIRouter()


class NowPlayingRequest(BaseModel):
    clip_id: str
    seq: Optional[int] = Field(default=None, ge=1)
    title: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1)
    controller_id: Optional[str] = None
    playlist_index: Optional[int] = Field(default=None, ge=0)
    playlist_ids: Optional[List[str]] = None


class HeartbeatRequest(BaseModel):
    controller_id: Optional[str] = None


@router.get("/{channel}/now-playing")
async def read_now_playing(
    channel: str = Depends(channel_scope),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
):
    """Current clip plus elapsed time; `has_state` is false when nothing was ever started."""
    return await get_now_playing(
        backend,
        channel,
        timeout_seconds=app_settings.CONTROLLER_TIMEOUT_SECONDS,
    )


@router.post("/{channel}/now-playing")
async def write_now_playing(
    request: NowPlayingRequest,
    channel: str = Depends(channel_scope),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    return await set_now_playing(
        db,
        backend,
        channel,
        request.clip_id,
        seq=request.seq,
        title=request.title,
        duration=request.duration,
        controller_id=request.controller_id,
        playlist_index=request.playlist_index,
        playlist_ids=request.playlist_ids,
        timeout_seconds=app_settings.CONTROLLER_TIMEOUT_SECONDS,
    )


@router.post("/{channel}/heartbeat")
async def controller_heartbeat(
    request: HeartbeatRequest,
    channel: str = Depends(channel_scope),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    app_settings: Settings = Depends(get_settings),
):
    return await heartbeat(
        backend,
        channel,
        request.controller_id,
        timeout_seconds=app_settings.CONTROLLER_TIMEOUT_SECONDS,
    )


@router.post("/{channel}/clear")
async def clear_state(
    channel: str = Depends(channel_scope),
    backend: RuntimeStateBackend = Depends(get_state_backend),
):
    """Player reload: drop now-playing, pending force-play and the category filter."""
    return await clear_playback_state(backend, channel)
