"""Permanent per-channel sequence number allocation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import dialect_insert
from models.channel import Channel
from models.clip import Clip
from services.common import utcnow
from services.errors import ConflictError, StoreUnavailableError
from services.games import ensure_game_rows
from services.importers.types import ClipDescriptor


logger = logging.getLogger(__name__)

_UNDATED = datetime.max.replace(tzinfo=timezone.utc)


def order_for_allocation(descriptors: Sequence[ClipDescriptor]) -> List[ClipDescriptor]:
    """Oldest first; ties and undated clips keep their fetch order."""
    indexed = list(enumerate(descriptors))
    indexed.sort(key=lambda item: (item[1].created_at or _UNDATED, item[0]))
    return [descriptor for _, descriptor in indexed]


async def current_max_seq(db: AsyncSession, channel: str) -> int:
    result = await db.execute(select(func.max(Clip.seq)).where(Clip.channel == channel))
    return int(result.scalar() or 0)


async def existing_clip_ids(db: AsyncSession, channel: str, clip_ids: Iterable[str]) -> Set[str]:
    wanted = list({clip_id for clip_id in clip_ids if clip_id})
    if not wanted:
        return set()
    result = await db.execute(
        select(Clip.platform_clip_id).where(
            Clip.channel == channel,
            Clip.platform_clip_id.in_(wanted),
        )
    )
    return {row[0] for row in result.all()}


async def _lock_channel(db: AsyncSession, channel: str) -> Channel:
    await db.execute(
        dialect_insert(db, Channel).values(login=channel).on_conflict_do_nothing(index_elements=["login"])
    )
    result = await db.execute(select(Channel).where(Channel.login == channel).with_for_update())
    return result.scalar_one()


async def _insert_numbered(
    db: AsyncSession,
    channel: str,
    descriptors: Sequence[ClipDescriptor],
    start_after: int,
) -> List[Tuple[ClipDescriptor, int]]:
    games: Dict[str, Optional[str]] = {}
    for descriptor in descriptors:
        if descriptor.game_id and not games.get(descriptor.game_id):
            games[descriptor.game_id] = descriptor.game_name
    await ensure_game_rows(db, games)

    assigned: List[Tuple[ClipDescriptor, int]] = []
    for offset, descriptor in enumerate(order_for_allocation(descriptors), start=1):
        seq = start_after + offset
        db.add(
            Clip(
                channel=channel,
                platform_clip_id=descriptor.platform_clip_id,
                seq=seq,
                platform=descriptor.platform,
                title=descriptor.title,
                duration_seconds=descriptor.duration_seconds,
                created_at=descriptor.created_at,
                view_count=descriptor.view_count,
                game_id=descriptor.game_id,
                creator_name=descriptor.creator_name,
                thumbnail_url=descriptor.thumbnail_url,
                blocked=False,
            )
        )
        assigned.append((descriptor, seq))
    await db.flush()
    return assigned


async def allocate(
    db: AsyncSession,
    channel: str,
    descriptors: Sequence[ClipDescriptor],
) -> List[Tuple[ClipDescriptor, int]]:
    """Number a deduplicated batch as max(seq)+1.. and persist it in one transaction.

    The batch is sorted by upstream created_at before numbering, but it is never
    interleaved with clips that are already stored. Ids stored by a concurrent
    import after the caller's dedup check are dropped under the channel lock.
    """
    if not descriptors:
        return []
    try:
        channel_row = await _lock_channel(db, channel)
        stored = await existing_clip_ids(db, channel, [descriptor.platform_clip_id for descriptor in descriptors])
        fresh = [descriptor for descriptor in descriptors if descriptor.platform_clip_id not in stored]
        if stored:
            logger.info("Dropped %s clips stored concurrently for %s", len(stored), channel)
        if not fresh:
            await db.commit()
            return []
        max_seq = await current_max_seq(db, channel)
        assigned = await _insert_numbered(db, channel, fresh, max_seq)
        channel_row.last_refresh_at = utcnow()
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Sequence allocation for %s aborted: %s", channel, exc)
        raise ConflictError(
            f"Import for {channel} collided with a concurrent import. No clips were numbered; retry."
        ) from exc
    except (OperationalError, InterfaceError) as exc:
        await db.rollback()
        logger.exception("Sequence allocation for %s failed on the store", channel)
        raise StoreUnavailableError("Clip store unavailable. No clips were numbered.") from exc

    logger.info(
        "Allocated seq %s-%s for %s (%s clips)",
        assigned[0][1],
        assigned[-1][1],
        channel,
        len(assigned),
    )
    return assigned


async def bootstrap_sequence(
    db: AsyncSession,
    channel: str,
    descriptors: Sequence[ClipDescriptor],
) -> List[Tuple[ClipDescriptor, int]]:
    """One-time global numbering 1..N of a channel's pre-existing clip collection.

    Refused once the channel has any numbered clip or has been bootstrapped before.
    """
    unique: Dict[str, ClipDescriptor] = {}
    for descriptor in descriptors:
        unique.setdefault(descriptor.platform_clip_id, descriptor)
    if not unique:
        return []

    try:
        channel_row = await _lock_channel(db, channel)
        existing = await db.execute(select(func.count(Clip.id)).where(Clip.channel == channel))
        if channel_row.seq_bootstrapped_at is not None or int(existing.scalar() or 0) > 0:
            await db.rollback()
            raise ConflictError(
                f"Channel {channel} already has sequence numbers. Bootstrap only runs on an empty catalog."
            )
        assigned = await _insert_numbered(db, channel, list(unique.values()), 0)
        now = utcnow()
        channel_row.seq_bootstrapped_at = now
        channel_row.last_refresh_at = now
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(f"Bootstrap for {channel} collided with a concurrent import.") from exc
    except (OperationalError, InterfaceError) as exc:
        await db.rollback()
        logger.exception("Bootstrap for %s failed on the store", channel)
        raise StoreUnavailableError("Clip store unavailable. Bootstrap aborted.") from exc

    logger.info("Bootstrapped %s clips for %s", len(assigned), channel)
    return assigned
