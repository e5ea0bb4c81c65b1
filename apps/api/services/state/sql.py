"""Database-backed runtime state using upserts and DELETE ... RETURNING."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database import dialect_insert
from models.category_filter import CategoryFilter
from models.command_request import CommandRequest
from models.now_playing import NowPlaying
from services.common import as_utc
from services.state.base import Record, RuntimeStateBackend


_DATETIME_FIELDS = ("issued_at", "started_at", "updated_at", "contested_at", "set_at")


def _normalize(row: Optional[Dict[str, Any]]) -> Optional[Record]:
    if row is None:
        return None
    record = dict(row)
    for key in _DATETIME_FIELDS:
        if key in record:
            record[key] = as_utc(record[key])
    record.pop("channel", None)
    return record


class SqlStateBackend(RuntimeStateBackend):
    name = "database"

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _upsert(self, model, key_columns, values: Dict[str, Any]) -> None:
        stmt = dialect_insert(self.db, model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=key_columns,
            set_={column: stmt.excluded[column] for column in values if column not in key_columns},
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _read(self, table, *criteria) -> Optional[Record]:
        result = await self.db.execute(select(table).where(*criteria))
        row = result.mappings().first()
        await self.db.commit()
        return _normalize(row)

    async def _delete(self, model, *criteria) -> None:
        await self.db.execute(delete(model).where(*criteria).execution_options(synchronize_session=False))
        await self.db.commit()

    async def put_command(self, channel: str, kind: str, record: Record) -> None:
        await self._upsert(
            CommandRequest,
            ["channel", "kind"],
            {
                "channel": channel,
                "kind": kind,
                "nonce": record["nonce"],
                "issued_at": record["issued_at"],
                "window_seconds": int(record["window_seconds"]),
                "payload": record.get("payload") or {},
            },
        )

    async def take_command(self, channel: str, kind: str) -> Optional[Record]:
        table = CommandRequest.__table__
        stmt = (
            delete(table)
            .where(table.c.channel == channel, table.c.kind == kind)
            .returning(table.c.nonce, table.c.issued_at, table.c.window_seconds, table.c.payload)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return _normalize(row)

    async def delete_command(self, channel: str, kind: str) -> None:
        await self._delete(CommandRequest, CommandRequest.channel == channel, CommandRequest.kind == kind)

    async def write_now_playing(self, channel: str, record: Record) -> None:
        values = {
            "channel": channel,
            "clip_id": record["clip_id"],
            "seq": record.get("seq"),
            "title": record.get("title"),
            "duration": int(record.get("duration") or 30),
            "started_at": record["started_at"],
            "updated_at": record["updated_at"],
            "controller_id": record.get("controller_id"),
            "contested_at": record.get("contested_at"),
            "playlist_index": record.get("playlist_index"),
            "playlist_ids": record.get("playlist_ids"),
        }
        await self._upsert(NowPlaying, ["channel"], values)

    async def read_now_playing(self, channel: str) -> Optional[Record]:
        table = NowPlaying.__table__
        return await self._read(table, table.c.channel == channel)

    async def touch_now_playing(
        self,
        channel: str,
        *,
        updated_at: datetime,
        controller_id: Optional[str],
        contested_at: Optional[datetime],
    ) -> bool:
        table = NowPlaying.__table__
        result = await self.db.execute(
            update(table)
            .where(table.c.channel == channel)
            .values(updated_at=updated_at, controller_id=controller_id, contested_at=contested_at)
        )
        await self.db.commit()
        return bool(result.rowcount)

    async def delete_now_playing(self, channel: str) -> None:
        await self._delete(NowPlaying, NowPlaying.channel == channel)

    async def write_filter(self, channel: str, record: Record) -> None:
        await self._upsert(
            CategoryFilter,
            ["channel"],
            {
                "channel": channel,
                "query": record["query"],
                "game_ids": list(record["game_ids"]),
                "game_names": list(record["game_names"]),
                "display_name": record["display_name"],
                "clip_count": int(record["clip_count"]),
                "nonce": record["nonce"],
                "set_at": record["set_at"],
            },
        )

    async def read_filter(self, channel: str) -> Optional[Record]:
        table = CategoryFilter.__table__
        return await self._read(table, table.c.channel == channel)

    async def delete_filter(self, channel: str) -> None:
        await self._delete(CategoryFilter, CategoryFilter.channel == channel)
