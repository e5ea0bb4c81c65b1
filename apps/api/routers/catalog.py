"""
Router for catalog browsing, lookups and import intake.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db
from routers.dependencies import ModeratorContext, channel_scope, require_admin_key
from routers.rate_limit import rate_limit
from services.catalog import (
    catalog_summary,
    get_clip_by_seq,
    import_batch,
    list_clips,
    record_play,
)
from services.games import cache_games, list_unresolved_game_ids
from services.import_queue import enqueue_import_job
from services.importers.normalize import normalize_batch
from services.importers.types import SUPPORTED_PLATFORMS, ClipNormalizationError
from services.errors import ValidationError
from services.sequence import bootstrap_sequence

router = APIRouter()
logger = logging.getLogger(__name__)


class ImportRequest(BaseModel):
    platform: str = "twitch"
    clips: List[Dict[str, Any]] = Field(default_factory=list)
    defer: Optional[bool] = None


class GameCacheRequest(BaseModel):
    games: List[Dict[str, Any]] = Field(default_factory=list)


class ClipPlayedRequest(BaseModel):
    clip_id: str


@router.post("/games")
async def upsert_games(
    request: GameCacheRequest,
    _: ModeratorContext = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
):
    """Store resolved game names and box art."""
    updated = await cache_games(db, request.games)
    return {"updated": updated}


@router.get("/games/unresolved")
async def unresolved_games(
    channel: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Game ids referenced by clips whose names have not been fetched yet."""
    scoped = channel_scope(channel) if channel else None
    return {"game_ids": await list_unresolved_game_ids(db, scoped)}


@router.get("/{channel}/clips")
async def browse_clips(
    channel: str = Depends(channel_scope),
    game_id: Optional[List[str]] = Query(default=None),
    q: Optional[str] = None,
    order: str = "seq",
    limit: int = Query(default=100, ge=1),
    offset: int = Query(default=0, ge=0),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """List playable clips. Every whitespace-separated word in `q` must appear in the title."""
    terms = (q or "").split()
    clips = await list_clips(
        db,
        channel,
        game_ids=game_id,
        title_terms=terms,
        order=order,
        limit=min(limit, int(app_settings.CATALOG_PAGE_MAX)),
        offset=offset,
    )
    return {"channel": channel, "count": len(clips), "clips": clips}


@router.get("/{channel}/clips/{seq}")
async def clip_by_seq(
    seq: int,
    channel: str = Depends(channel_scope),
    db: AsyncSession = Depends(get_db),
):
    return await get_clip_by_seq(db, channel, seq)


@router.get("/{channel}/summary")
async def summary(
    channel: str = Depends(channel_scope),
    db: AsyncSession = Depends(get_db),
):
    return await catalog_summary(db, channel)


@router.post("/{channel}/import")
async def import_clips(
    request: ImportRequest,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Import a batch of upstream clips, inline or through the worker queue."""
    if request.platform not in SUPPORTED_PLATFORMS:
        raise ValidationError(f"Unsupported platform '{request.platform}'.")
    defer = app_settings.IMPORT_DEFERRED_DEFAULT if request.defer is None else request.defer
    if not defer:
        return await import_batch(db, channel, request.platform, request.clips)

    try:
        job = enqueue_import_job(channel, request.platform, request.clips)
    except Exception as exc:
        logger.exception("Failed to enqueue import for %s", channel)
        raise HTTPException(
            status_code=503,
            detail="Import queue unavailable. Check Redis/worker availability and retry.",
        ) from exc
    return {"channel": channel, "queued": True, "job_id": job.id, "clip_count": len(request.clips)}


@router.post("/{channel}/bootstrap")
async def bootstrap_channel(
    request: ImportRequest,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
):
    """One-time numbering of an existing clip collection, oldest clip first."""
    try:
        descriptors, errors = normalize_batch(request.platform, request.clips)
    except ClipNormalizationError as exc:
        raise ValidationError(str(exc)) from exc
    assigned = await bootstrap_sequence(db, channel, descriptors)
    return {
        "channel": channel,
        "inserted": len(assigned),
        "errors": errors,
        "max_seq": assigned[-1][1] if assigned else 0,
    }


@router.post(
    "/{channel}/played",
    dependencies=[Depends(rate_limit("played", limit=60, window_seconds=60))],
)
async def clip_played(
    request: ClipPlayedRequest,
    channel: str = Depends(channel_scope),
    db: AsyncSession = Depends(get_db),
):
    return await record_play(db, channel, request.clip_id)
