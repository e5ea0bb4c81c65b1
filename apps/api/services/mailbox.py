"""One-shot command mailbox.

Each (channel, kind) has a single slot. Issuing overwrites the slot; the first
poll inside the freshness window takes it, and every later poll sees nothing.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from config import Settings, settings
from services.common import isoformat, utcnow
from services.errors import ValidationError
from services.state.base import RuntimeStateBackend


logger = logging.getLogger(__name__)


class CommandKind(str, Enum):
    SKIP = "skip"
    PREV = "prev"
    FORCE_PLAY = "force_play"
    SHUFFLE = "shuffle"
    TOP_CLIPS = "top_clips"


@dataclass(frozen=True)
class IssuedCommand:
    channel: str
    kind: CommandKind
    nonce: str
    issued_at: datetime
    window_seconds: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_poll_response(self) -> Dict[str, Any]:
        return {
            self.kind.value: True,
            "active": True,
            "nonce": self.nonce,
            "issued_at": isoformat(self.issued_at),
            "payload": dict(self.payload),
        }


def parse_kind(value: Any) -> CommandKind:
    text = str(value or "").strip().lower().replace("-", "_")
    try:
        return CommandKind(text)
    except ValueError as exc:
        options = ", ".join(kind.value for kind in CommandKind)
        raise ValidationError(f"Unknown command '{value}'. Use one of: {options}.") from exc


def freshness_window(kind: CommandKind, app_settings: Settings = settings) -> int:
    windows = {
        CommandKind.SKIP: app_settings.SKIP_WINDOW_SECONDS,
        CommandKind.PREV: app_settings.PREV_WINDOW_SECONDS,
        CommandKind.FORCE_PLAY: app_settings.FORCE_PLAY_WINDOW_SECONDS,
        CommandKind.SHUFFLE: app_settings.SHUFFLE_WINDOW_SECONDS,
        CommandKind.TOP_CLIPS: app_settings.TOP_CLIPS_WINDOW_SECONDS,
    }
    return max(int(windows[kind]), 1)


def empty_poll_response(kind: CommandKind) -> Dict[str, Any]:
    return {
        kind.value: False,
        "active": False,
        "nonce": None,
        "issued_at": None,
        "payload": {},
    }


async def issue(
    backend: RuntimeStateBackend,
    channel: str,
    kind: CommandKind,
    payload: Optional[Dict[str, Any]] = None,
    *,
    window_seconds: int,
    now: Optional[datetime] = None,
) -> IssuedCommand:
    """Deposit a command, replacing whatever was pending for the same kind."""
    command = IssuedCommand(
        channel=channel,
        kind=kind,
        nonce=secrets.token_urlsafe(12),
        issued_at=now or utcnow(),
        window_seconds=max(int(window_seconds), 1),
        payload=dict(payload or {}),
    )
    await backend.put_command(
        channel,
        kind.value,
        {
            "nonce": command.nonce,
            "issued_at": command.issued_at,
            "window_seconds": command.window_seconds,
            "payload": command.payload,
        },
    )
    logger.info("Issued %s for %s (nonce=%s)", kind.value, channel, command.nonce)
    return command


async def poll_and_consume(
    backend: RuntimeStateBackend,
    channel: str,
    kind: CommandKind,
    *,
    now: Optional[datetime] = None,
) -> Optional[IssuedCommand]:
    """Take the pending command if it is still fresh.

    The slot is removed either way, so an expired command is garbage-collected
    by the first poll that finds it.
    """
    record = await backend.take_command(channel, kind.value)
    if record is None:
        return None
    issued_at = record.get("issued_at")
    window_seconds = int(record.get("window_seconds") or 0)
    current = now or utcnow()
    if issued_at is None or current - issued_at > timedelta(seconds=window_seconds):
        logger.info("Dropped stale %s for %s (nonce=%s)", kind.value, channel, record.get("nonce"))
        return None
    logger.info("Delivered %s for %s (nonce=%s)", kind.value, channel, record.get("nonce"))
    return IssuedCommand(
        channel=channel,
        kind=kind,
        nonce=str(record.get("nonce")),
        issued_at=issued_at,
        window_seconds=window_seconds,
        payload=dict(record.get("payload") or {}),
    )
