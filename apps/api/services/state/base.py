"""Storage contract for per-channel runtime state.

Records are plain dicts with aware UTC datetimes so either backend can hold them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional


Record = Dict[str, Any]


class RuntimeStateBackend(ABC):
    name: str

    @abstractmethod
    async def put_command(self, channel: str, kind: str, record: Record) -> None:
        """Replace the single mailbox slot for (channel, kind)."""
        raise NotImplementedError

    @abstractmethod
    async def take_command(self, channel: str, kind: str) -> Optional[Record]:
        """Atomically remove and return the slot. Concurrent callers: one winner."""
        raise NotImplementedError

    @abstractmethod
    async def delete_command(self, channel: str, kind: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def write_now_playing(self, channel: str, record: Record) -> None:
        raise NotImplementedError

    @abstractmethod
    async def read_now_playing(self, channel: str) -> Optional[Record]:
        raise NotImplementedError

    @abstractmethod
    async def touch_now_playing(
        self,
        channel: str,
        *,
        updated_at: datetime,
        controller_id: Optional[str],
        contested_at: Optional[datetime],
    ) -> bool:
        """Refresh heartbeat fields only. Returns False when no row exists."""
        raise NotImplementedError

    @abstractmethod
    async def delete_now_playing(self, channel: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def write_filter(self, channel: str, record: Record) -> None:
        raise NotImplementedError

    @abstractmethod
    async def read_filter(self, channel: str) -> Optional[Record]:
        raise NotImplementedError

    @abstractmethod
    async def delete_filter(self, channel: str) -> None:
        raise NotImplementedError
