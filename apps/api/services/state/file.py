"""JSON-file runtime state for deployments without a database.

Writes go through a temp file and os.replace. Taking a command renames the
slot file to a private claim name first, so only one concurrent taker wins.
Disk access runs in worker threads to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from services.common import isoformat, parse_datetime
from services.errors import StoreUnavailableError
from services.state.base import Record, RuntimeStateBackend


logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("issued_at", "started_at", "updated_at", "contested_at", "set_at")


def _encode(record: Record) -> Dict[str, Any]:
    encoded = dict(record)
    for key in _DATETIME_FIELDS:
        if isinstance(encoded.get(key), datetime):
            encoded[key] = isoformat(encoded[key])
    return encoded


def _decode(data: Dict[str, Any]) -> Record:
    for key in _DATETIME_FIELDS:
        if key in data:
            data[key] = parse_datetime(data[key])
    return data


class FileStateBackend(RuntimeStateBackend):
    name = "file"

    def __init__(self, runtime_dir: str) -> None:
        self.root = Path(runtime_dir)

    def _path(self, section: str, *parts: str) -> Path:
        return self.root / section / ("__".join(parts) + ".json")

    def _write(self, path: Path, record: Record) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
            temp_path.write_text(json.dumps(_encode(record)), encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as exc:
            logger.exception("Runtime state write failed for %s", path)
            raise StoreUnavailableError("Runtime state directory is not writable.") from exc

    def _read(self, path: Path) -> Optional[Record]:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.exception("Runtime state read failed for %s", path)
            raise StoreUnavailableError("Runtime state directory is not readable.") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable runtime state file %s", path)
            return None
        return _decode(data) if isinstance(data, dict) else None

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StoreUnavailableError("Runtime state directory is not writable.") from exc

    def _take(self, path: Path) -> Optional[Record]:
        claim_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.claim")
        try:
            os.rename(path, claim_path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreUnavailableError("Runtime state directory is not writable.") from exc
        record = self._read(claim_path)
        self._remove(claim_path)
        return record

    def _touch(self, path: Path, changes: Record) -> bool:
        record = self._read(path)
        if record is None:
            return False
        record.update(changes)
        self._write(path, record)
        return True

    async def put_command(self, channel: str, kind: str, record: Record) -> None:
        await asyncio.to_thread(self._write, self._path("commands", channel, kind), record)

    async def take_command(self, channel: str, kind: str) -> Optional[Record]:
        return await asyncio.to_thread(self._take, self._path("commands", channel, kind))

    async def delete_command(self, channel: str, kind: str) -> None:
        await asyncio.to_thread(self._remove, self._path("commands", channel, kind))

    async def write_now_playing(self, channel: str, record: Record) -> None:
        await asyncio.to_thread(self._write, self._path("now_playing", channel), record)

    async def read_now_playing(self, channel: str) -> Optional[Record]:
        return await asyncio.to_thread(self._read, self._path("now_playing", channel))

    async def touch_now_playing(
        self,
        channel: str,
        *,
        updated_at: datetime,
        controller_id: Optional[str],
        contested_at: Optional[datetime],
    ) -> bool:
        changes = {"updated_at": updated_at, "controller_id": controller_id, "contested_at": contested_at}
        return await asyncio.to_thread(self._touch, self._path("now_playing", channel), changes)

    async def delete_now_playing(self, channel: str) -> None:
        await asyncio.to_thread(self._remove, self._path("now_playing", channel))

    async def write_filter(self, channel: str, record: Record) -> None:
        await asyncio.to_thread(self._write, self._path("filters", channel), record)

    async def read_filter(self, channel: str) -> Optional[Record]:
        return await asyncio.to_thread(self._read, self._path("filters", channel))

    async def delete_filter(self, channel: str) -> None:
        await asyncio.to_thread(self._remove, self._path("filters", channel))
