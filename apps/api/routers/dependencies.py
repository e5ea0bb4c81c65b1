"""Shared request dependencies: moderator key, channel scoping, runtime state."""

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db
from services.common import normalize_channel
from services.state import RuntimeStateBackend, build_state_backend


@dataclass
class ModeratorContext:
    moderator: Optional[str] = None


def channel_scope(channel: str) -> str:
    """Normalize the {channel} path parameter."""
    return normalize_channel(channel)


async def require_admin_key(
    x_admin_key: Optional[str] = Header(default=None),
    key: Optional[str] = Query(default=None),
    moderator: Optional[str] = Query(default=None),
    app_settings: Settings = Depends(get_settings),
) -> ModeratorContext:
    """Reject moderator calls without the configured shared key."""
    expected = (app_settings.ADMIN_KEY or "").strip()
    if not expected:
        raise HTTPException(status_code=403, detail="Moderator commands are disabled.")
    supplied = (x_admin_key or key or "").strip()
    if not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Invalid admin key.")
    cleaned = (moderator or "").strip().lower() or None
    return ModeratorContext(moderator=cleaned)


async def get_state_backend(
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
) -> RuntimeStateBackend:
    return build_state_backend(db, app_settings)
