"""Moderation overlay: block and restore clips by sequence number."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.blocklist_entry import BlocklistEntry
from models.clip import Clip
from services.catalog import find_clip_by_seq
from services.common import isoformat


logger = logging.getLogger(__name__)


async def blocked_count(db: AsyncSession, channel: str) -> int:
    result = await db.execute(
        select(func.count(Clip.id)).where(Clip.channel == channel, Clip.blocked.is_(True))
    )
    return int(result.scalar() or 0)


async def block(
    db: AsyncSession,
    channel: str,
    seq: Any,
    *,
    removed_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Hide a clip from every playback read. Re-blocking reports the current state."""
    clip = await find_clip_by_seq(db, channel, seq)
    title = clip.title or "(untitled)"
    if clip.blocked:
        return {
            "clip_id": clip.platform_clip_id,
            "seq": clip.seq,
            "title": title,
            "already_blocked": True,
            "blocked_count": await blocked_count(db, channel),
        }

    try:
        clip.blocked = True
        existing = await db.execute(
            select(BlocklistEntry).where(
                BlocklistEntry.channel == channel,
                BlocklistEntry.clip_id == clip.platform_clip_id,
            )
        )
        if existing.scalar_one_or_none() is None:
            db.add(
                BlocklistEntry(
                    channel=channel,
                    clip_id=clip.platform_clip_id,
                    seq=clip.seq,
                    title=clip.title,
                    removed_by=removed_by,
                )
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    count = await blocked_count(db, channel)
    logger.info("Blocked clip #%s (%s) for %s by %s", clip.seq, clip.platform_clip_id, channel, removed_by)
    return {
        "clip_id": clip.platform_clip_id,
        "seq": clip.seq,
        "title": title,
        "already_blocked": False,
        "blocked_count": count,
    }


async def unblock(db: AsyncSession, channel: str, seq: Any) -> Dict[str, Any]:
    """Restore a blocked clip. Restoring a visible clip reports the current state."""
    clip = await find_clip_by_seq(db, channel, seq)
    title = clip.title or "(untitled)"
    was_blocked = bool(clip.blocked)

    try:
        clip.blocked = False
        await db.execute(
            delete(BlocklistEntry).where(
                BlocklistEntry.channel == channel,
                BlocklistEntry.clip_id == clip.platform_clip_id,
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if was_blocked:
        logger.info("Restored clip #%s (%s) for %s", clip.seq, clip.platform_clip_id, channel)
    return {
        "clip_id": clip.platform_clip_id,
        "seq": clip.seq,
        "title": title,
        "was_blocked": was_blocked,
        "remaining_count": await blocked_count(db, channel),
    }


async def list_blocked(db: AsyncSession, channel: str) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(BlocklistEntry)
        .where(BlocklistEntry.channel == channel)
        .order_by(BlocklistEntry.seq.asc())
    )
    return [
        {
            "clip_id": entry.clip_id,
            "seq": entry.seq,
            "title": entry.title,
            "removed_by": entry.removed_by,
            "removed_at": isoformat(entry.removed_at),
        }
        for entry in result.scalars().all()
    ]
