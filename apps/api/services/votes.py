"""Viewer votes: counter table plus a per-user ledger kept in step transactionally."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import and_, case, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import dialect_insert
from models.clip import Clip
from models.clip_vote import ClipVote
from models.vote_ledger import VoteLedger
from services.catalog import find_clip_by_seq
from services.errors import NotFoundError, ValidationError


logger = logging.getLogger(__name__)

_DIRECTIONS = {
    "up": "up",
    "like": "up",
    "down": "down",
    "dislike": "down",
}


def parse_direction(value: Any) -> str:
    direction = _DIRECTIONS.get(str(value or "").strip().lower())
    if direction is None:
        raise ValidationError("Invalid vote. Use 'up' or 'down'.")
    return direction


def _clean_username(value: Any) -> str:
    username = str(value or "").strip().lower()
    if not username:
        raise ValidationError("username is required.")
    return username


async def _counts(db: AsyncSession, channel: str, clip_id: str) -> Dict[str, int]:
    result = await db.execute(
        select(ClipVote.up_votes, ClipVote.down_votes).where(
            ClipVote.channel == channel,
            ClipVote.clip_id == clip_id,
        )
    )
    row = result.first()
    return {
        "up_votes": int(row[0]) if row else 0,
        "down_votes": int(row[1]) if row else 0,
    }


async def _ledger_direction(db: AsyncSession, channel: str, clip_id: str, username: str):
    result = await db.execute(
        select(VoteLedger.direction).where(
            VoteLedger.channel == channel,
            VoteLedger.clip_id == clip_id,
            VoteLedger.username == username,
        )
    )
    return result.scalar_one_or_none()


async def cast_vote(
    db: AsyncSession,
    channel: str,
    seq: Any,
    username: Any,
    direction: Any,
) -> Dict[str, Any]:
    """Record one vote per user per clip. A repeat vote is reported, not applied."""
    vote_dir = parse_direction(direction)
    voter = _clean_username(username)
    clip = await find_clip_by_seq(db, channel, seq)
    if clip.blocked:
        raise NotFoundError(f"Clip #{clip.seq} has been removed.")
    clip_id = clip.platform_clip_id
    base = {"seq": clip.seq, "clip_id": clip_id, "title": clip.title, "direction": vote_dir}

    previous = await _ledger_direction(db, channel, clip_id, voter)
    if previous is not None:
        return {**base, "recorded": False, "direction": previous, **(await _counts(db, channel, clip_id))}

    up_delta = 1 if vote_dir == "up" else 0
    down_delta = 1 - up_delta
    try:
        db.add(VoteLedger(channel=channel, clip_id=clip_id, username=voter, direction=vote_dir))
        await db.flush()
        stmt = dialect_insert(db, ClipVote).values(
            channel=channel,
            clip_id=clip_id,
            seq=clip.seq,
            title=clip.title,
            up_votes=up_delta,
            down_votes=down_delta,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["channel", "clip_id"],
            set_={
                "up_votes": ClipVote.up_votes + up_delta,
                "down_votes": ClipVote.down_votes + down_delta,
                "title": stmt.excluded.title,
            },
        )
        await db.execute(stmt)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return {**base, "recorded": False, **(await _counts(db, channel, clip_id))}
    except Exception:
        await db.rollback()
        raise

    return {**base, "recorded": True, **(await _counts(db, channel, clip_id))}


async def retract_vote(db: AsyncSession, channel: str, seq: Any, username: Any) -> Dict[str, Any]:
    """Remove a user's vote: counter decrement and ledger delete land together or not at all."""
    voter = _clean_username(username)
    clip = await find_clip_by_seq(db, channel, seq)
    clip_id = clip.platform_clip_id
    base = {"seq": clip.seq, "clip_id": clip_id, "title": clip.title}

    previous = await _ledger_direction(db, channel, clip_id, voter)
    if previous is None:
        return {**base, "retracted": False, "direction": None, **(await _counts(db, channel, clip_id))}

    column = ClipVote.up_votes if previous == "up" else ClipVote.down_votes
    try:
        await db.execute(
            update(ClipVote)
            .where(ClipVote.channel == channel, ClipVote.clip_id == clip_id)
            .values({column: case((column > 0, column - 1), else_=0)})
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(VoteLedger)
            .where(
                VoteLedger.channel == channel,
                VoteLedger.clip_id == clip_id,
                VoteLedger.username == voter,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Vote retraction failed for %s clip %s", channel, clip_id)
        raise

    return {**base, "retracted": True, "direction": previous, **(await _counts(db, channel, clip_id))}


async def top_clips(db: AsyncSession, channel: str, count: int) -> List[Dict[str, Any]]:
    """Net-positive clips ordered by net score, then up votes."""
    net = (ClipVote.up_votes - ClipVote.down_votes).label("net")
    result = await db.execute(
        select(Clip, ClipVote.up_votes, ClipVote.down_votes, net)
        .join(
            ClipVote,
            and_(ClipVote.channel == Clip.channel, ClipVote.clip_id == Clip.platform_clip_id),
        )
        .where(
            Clip.channel == channel,
            Clip.blocked.is_(False),
            (ClipVote.up_votes - ClipVote.down_votes) > 0,
        )
        .order_by(net.desc(), ClipVote.up_votes.desc(), Clip.seq.asc())
        .limit(max(int(count), 0))
    )
    return [
        {
            "seq": clip.seq,
            "clip_id": clip.platform_clip_id,
            "title": clip.title,
            "duration": clip.duration_seconds,
            "thumbnail_url": clip.thumbnail_url,
            "up_votes": int(up_votes or 0),
            "down_votes": int(down_votes or 0),
            "net": int(net_score or 0),
        }
        for clip, up_votes, down_votes, net_score in result.all()
    ]
