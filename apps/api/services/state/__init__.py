"""Runtime coordination state (mailbox, now-playing, category filter) backends."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from services.state.base import RuntimeStateBackend
from services.state.file import FileStateBackend
from services.state.sql import SqlStateBackend


def build_state_backend(db: AsyncSession, app_settings: Settings) -> RuntimeStateBackend:
    backend = (app_settings.STATE_BACKEND or "database").strip().lower()
    if backend == "file":
        return FileStateBackend(app_settings.RUNTIME_DIR)
    if backend == "database":
        return SqlStateBackend(db)
    raise ValueError(f"Unknown STATE_BACKEND '{app_settings.STATE_BACKEND}'")


__all__ = [
    "FileStateBackend",
    "RuntimeStateBackend",
    "SqlStateBackend",
    "build_state_backend",
]
