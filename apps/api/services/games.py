"""Game metadata cache helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import dialect_insert
from models.clip import Clip
from models.game import Game
from services.common import utcnow
from services.errors import ValidationError


async def ensure_game_rows(db: AsyncSession, games: Dict[str, Optional[str]]) -> None:
    """Create cache rows for unseen game ids. Known names are never overwritten with blanks."""
    for game_id, name in games.items():
        stmt = dialect_insert(db, Game).values(game_id=game_id, name=name)
        if name:
            stmt = stmt.on_conflict_do_update(
                index_elements=["game_id"],
                set_={"name": func.coalesce(Game.name, stmt.excluded.name)},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["game_id"])
        await db.execute(stmt)


async def cache_games(
    db: AsyncSession,
    games: Iterable[Dict[str, Any]],
    *,
    now: Optional[datetime] = None,
) -> int:
    """Upsert resolved names and box art for upstream game ids."""
    fetched_at = now or utcnow()
    count = 0
    for game in games:
        game_id = str(game.get("game_id") or game.get("id") or "").strip()
        if not game_id:
            raise ValidationError("Each game requires a game_id.")
        name = str(game.get("name") or "").strip() or None
        box_art_url = str(game.get("box_art_url") or "").strip() or None
        stmt = dialect_insert(db, Game).values(
            game_id=game_id,
            name=name,
            box_art_url=box_art_url,
            fetched_at=fetched_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["game_id"],
            set_={
                "name": func.coalesce(stmt.excluded.name, Game.name),
                "box_art_url": func.coalesce(stmt.excluded.box_art_url, Game.box_art_url),
                "fetched_at": stmt.excluded.fetched_at,
            },
        )
        await db.execute(stmt)
        count += 1
    await db.commit()
    return count


async def list_unresolved_game_ids(db: AsyncSession, channel: Optional[str] = None) -> List[str]:
    query = select(Game.game_id).where(Game.name.is_(None))
    if channel:
        query = query.where(
            Game.game_id.in_(select(Clip.game_id).where(Clip.channel == channel, Clip.game_id.is_not(None)))
        )
    result = await db.execute(query.order_by(Game.game_id))
    return [row[0] for row in result.all()]
