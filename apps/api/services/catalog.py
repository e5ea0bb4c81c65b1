"""Clip catalog reads, import intake and play tracking."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set

from sqlalchemy import String, case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import dialect_insert
from models.clip import Clip
from models.clip_play import ClipPlay
from models.game import Game
from services.common import isoformat, require_positive_seq, utcnow
from services.errors import NotFoundError, ValidationError
from services.importers.normalize import normalize_batch
from services.importers.types import SUPPORTED_PLATFORMS, ClipDescriptor, ClipNormalizationError
from services.sequence import allocate, current_max_seq, existing_clip_ids


logger = logging.getLogger(__name__)

LIST_ORDERS = {
    "seq": (Clip.seq.asc(),),
    "seq_desc": (Clip.seq.desc(),),
    "views": (Clip.view_count.desc(), Clip.seq.asc()),
    "created": (Clip.created_at.desc(), Clip.seq.desc()),
}


def serialize_clip(clip: Clip, game_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "seq": clip.seq,
        "clip_id": clip.platform_clip_id,
        "platform": clip.platform,
        "title": clip.title,
        "duration": clip.duration_seconds,
        "created_at": isoformat(clip.created_at),
        "view_count": clip.view_count,
        "game_id": clip.game_id,
        "game_name": game_name,
        "creator_name": clip.creator_name,
        "thumbnail_url": clip.thumbnail_url,
        "blocked": bool(clip.blocked),
    }


async def import_batch(
    db: AsyncSession,
    channel: str,
    platform: str,
    raw_clips: Sequence[Dict[str, Any]],
) -> Dict[str, Any]:
    """Insert genuinely new clips with fresh sequence numbers.

    Safe to repeat with overlapping input: clips already stored for the channel
    are counted as skipped and keep their numbers.
    """
    if platform not in SUPPORTED_PLATFORMS:
        raise ValidationError(f"Unsupported platform '{platform}'. Use one of: {', '.join(SUPPORTED_PLATFORMS)}.")
    try:
        descriptors, errors = normalize_batch(platform, raw_clips)
    except ClipNormalizationError as exc:
        raise ValidationError(str(exc)) from exc

    seen_in_batch: Set[str] = set()
    unique: List[ClipDescriptor] = []
    duplicates = 0
    for descriptor in descriptors:
        if descriptor.platform_clip_id in seen_in_batch:
            duplicates += 1
            continue
        seen_in_batch.add(descriptor.platform_clip_id)
        unique.append(descriptor)

    known = await existing_clip_ids(db, channel, seen_in_batch)
    fresh = [descriptor for descriptor in unique if descriptor.platform_clip_id not in known]
    assigned = await allocate(db, channel, fresh)

    summary = {
        "channel": channel,
        "platform": platform,
        "inserted": len(assigned),
        "skipped_existing": len(unique) - len(assigned) + duplicates,
        "errors": errors,
        "assigned": [{"clip_id": descriptor.platform_clip_id, "seq": seq} for descriptor, seq in assigned],
        "max_seq": assigned[-1][1] if assigned else await current_max_seq(db, channel),
    }
    logger.info(
        "Import for %s/%s: inserted=%s skipped=%s errors=%s",
        channel,
        platform,
        summary["inserted"],
        summary["skipped_existing"],
        len(errors),
    )
    return summary


async def find_clip_by_seq(db: AsyncSession, channel: str, seq: Any) -> Clip:
    """Lookup including blocked clips. Missing numbers report the valid range."""
    number = require_positive_seq(seq)
    result = await db.execute(select(Clip).where(Clip.channel == channel, Clip.seq == number))
    clip = result.scalar_one_or_none()
    if clip is not None:
        return clip
    highest = await current_max_seq(db, channel)
    if highest == 0:
        raise NotFoundError(f"No clips found for {channel}.", max_seq=0)
    raise NotFoundError(f"Clip #{number} not found. Valid range: 1-{highest}", max_seq=highest)


async def get_clip_by_seq(db: AsyncSession, channel: str, seq: Any) -> Dict[str, Any]:
    clip = await find_clip_by_seq(db, channel, seq)
    if clip.blocked:
        raise NotFoundError(f"Clip #{clip.seq} has been removed.")
    game_name = None
    if clip.game_id:
        game = await db.get(Game, clip.game_id)
        game_name = game.name if game else None
    return serialize_clip(clip, game_name)


async def find_clip_by_platform_id(db: AsyncSession, channel: str, clip_id: str) -> Optional[Clip]:
    result = await db.execute(
        select(Clip).where(Clip.channel == channel, Clip.platform_clip_id == clip_id)
    )
    return result.scalar_one_or_none()


async def list_clips(
    db: AsyncSession,
    channel: str,
    *,
    game_ids: Optional[Sequence[str]] = None,
    title_terms: Optional[Sequence[str]] = None,
    order: str = "seq",
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """Playable clips for a channel. Blocked clips are never returned."""
    if order not in LIST_ORDERS:
        raise ValidationError(f"Unknown order '{order}'. Use one of: {', '.join(LIST_ORDERS)}.")
    query = (
        select(Clip, Game.name)
        .outerjoin(Game, Game.game_id == Clip.game_id)
        .where(Clip.channel == channel, Clip.blocked.is_(False))
    )
    if game_ids:
        query = query.where(Clip.game_id.in_(list(game_ids)))
    for term in title_terms or []:
        cleaned = str(term or "").strip().lower()
        if cleaned:
            query = query.where(func.lower(Clip.title, type_=String).contains(cleaned, autoescape=True))
    query = query.order_by(*LIST_ORDERS[order])
    if offset:
        query = query.offset(max(int(offset), 0))
    if limit is not None:
        query = query.limit(max(int(limit), 0))
    result = await db.execute(query)
    return [serialize_clip(clip, game_name) for clip, game_name in result.all()]


async def list_playable_clip_ids(db: AsyncSession, channel: str, game_ids: Sequence[str]) -> List[str]:
    result = await db.execute(
        select(Clip.platform_clip_id)
        .where(
            Clip.channel == channel,
            Clip.blocked.is_(False),
            Clip.game_id.in_(list(game_ids)),
        )
        .order_by(Clip.seq.asc())
    )
    return [row[0] for row in result.all()]


async def catalog_summary(db: AsyncSession, channel: str) -> Dict[str, Any]:
    result = await db.execute(
        select(
            func.count(Clip.id),
            func.coalesce(func.sum(case((Clip.blocked.is_(True), 1), else_=0)), 0),
            func.max(Clip.seq),
            func.max(Clip.created_at),
        ).where(Clip.channel == channel)
    )
    total, blocked, highest, latest = result.one()
    total = int(total or 0)
    if total == 0:
        raise NotFoundError(f"No clips found for {channel}.", max_seq=0)
    blocked = int(blocked or 0)
    return {
        "channel": channel,
        "total": total,
        "active": total - blocked,
        "blocked": blocked,
        "max_seq": int(highest or 0),
        "latest_created_at": isoformat(latest) if isinstance(latest, datetime) else latest,
    }


async def record_play(
    db: AsyncSession,
    channel: str,
    clip_id: str,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    clip_id = str(clip_id or "").strip()
    if not clip_id:
        raise ValidationError("clip_id is required.")
    played_at = now or utcnow()
    stmt = dialect_insert(db, ClipPlay).values(
        channel=channel,
        clip_id=clip_id,
        play_count=1,
        last_played_at=played_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["channel", "clip_id"],
        set_={
            "play_count": ClipPlay.play_count + 1,
            "last_played_at": stmt.excluded.last_played_at,
        },
    )
    await db.execute(stmt)
    await db.commit()
    row = await db.get(ClipPlay, (channel, clip_id), populate_existing=True)
    return {
        "clip_id": clip_id,
        "play_count": int(row.play_count if row else 1),
        "last_played_at": isoformat(played_at),
    }
