"""Per-channel category (game) filter."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import String, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.clip import Clip
from models.game import Game
from services.catalog import list_playable_clip_ids
from services.common import isoformat, utcnow
from services.errors import ValidationError
from services.state.base import RuntimeStateBackend


logger = logging.getLogger(__name__)

CLEAR_KEYWORDS = frozenset({"off", "clear", "all", "exit", "reset", "none"})


def is_clear_keyword(query: Any) -> bool:
    return str(query or "").strip().lower() in CLEAR_KEYWORDS


def _game_aggregate():
    label = func.coalesce(Game.name, Clip.game_id)
    clip_count = func.count(Clip.id)
    query = (
        select(Clip.game_id, label.label("game_name"), clip_count.label("clip_count"))
        .outerjoin(Game, Game.game_id == Clip.game_id)
        .where(Clip.blocked.is_(False), Clip.game_id.is_not(None))
        .group_by(Clip.game_id, Game.name)
        .order_by(clip_count.desc(), label.asc())
    )
    return query, label


async def available_games(db: AsyncSession, channel: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query, _ = _game_aggregate()
    query = query.where(Clip.channel == channel).limit(limit or settings.CATEGORY_AVAILABLE_LIMIT)
    result = await db.execute(query)
    return [
        {"game_id": game_id, "name": name, "clip_count": int(count)}
        for game_id, name, count in result.all()
    ]


async def set_filter(
    db: AsyncSession,
    backend: RuntimeStateBackend,
    channel: str,
    game_query: Any,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Filter playback to every game whose name contains the query."""
    query_text = str(game_query or "").strip()
    if not query_text:
        raise ValidationError("A category name is required.")

    aggregate, label = _game_aggregate()
    result = await db.execute(
        aggregate.where(
            Clip.channel == channel,
            func.lower(label, type_=String).contains(query_text.lower(), autoescape=True),
        )
    )
    matches = result.all()
    if not matches:
        return {
            "matched": False,
            "query": query_text,
            "available_games": await available_games(db, channel),
        }

    game_ids = [row[0] for row in matches]
    game_names = [row[1] for row in matches]
    clip_count = sum(int(row[2]) for row in matches)
    if len(matches) == 1:
        display_name = game_names[0]
    else:
        display_name = f"{query_text[:1].upper()}{query_text[1:]} ({len(matches)} games)"

    record = {
        "query": query_text,
        "game_ids": game_ids,
        "game_names": game_names,
        "display_name": display_name,
        "clip_count": clip_count,
        "nonce": secrets.token_urlsafe(12),
        "set_at": now or utcnow(),
    }
    await backend.write_filter(channel, record)
    logger.info("Category filter for %s set to %s (%s clips)", channel, display_name, clip_count)
    return {
        "matched": True,
        "query": query_text,
        "game_ids": game_ids,
        "game_names": game_names,
        "display_name": display_name,
        "clip_count": clip_count,
        "nonce": record["nonce"],
        "set_at": isoformat(record["set_at"]),
    }


async def clear_filter(backend: RuntimeStateBackend, channel: str) -> Dict[str, Any]:
    await backend.delete_filter(channel)
    logger.info("Category filter for %s cleared", channel)
    return {"active": False, "cleared": True}


async def get_filter(db: AsyncSession, backend: RuntimeStateBackend, channel: str) -> Dict[str, Any]:
    record = await backend.read_filter(channel)
    if record is None:
        return {
            "active": False,
            "game_ids": [],
            "game_names": [],
            "display_name": None,
            "clip_count": 0,
            "clip_ids": [],
            "nonce": None,
            "set_at": None,
        }
    game_ids = list(record.get("game_ids") or [])
    clip_ids = await list_playable_clip_ids(db, channel, game_ids) if game_ids else []
    return {
        "active": True,
        "game_ids": game_ids,
        "game_names": list(record.get("game_names") or []),
        "display_name": record.get("display_name"),
        "clip_count": len(clip_ids),
        "clip_ids": clip_ids,
        "nonce": record.get("nonce"),
        "set_at": isoformat(record.get("set_at")),
    }
