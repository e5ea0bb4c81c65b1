"""Small helpers shared across catalog services."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from services.errors import ValidationError


_CHANNEL_STRIP_RE = re.compile(r"[^a-z0-9_]")


def normalize_channel(value: Any) -> str:
    """Lowercase, trim and strip a channel login down to [a-z0-9_]."""
    channel = _CHANNEL_STRIP_RE.sub("", str(value or "").strip().lower())
    if not channel:
        raise ValidationError("Channel is required.")
    return channel


def require_positive_seq(seq: Any) -> int:
    try:
        value = int(seq)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Clip number must be a positive integer.") from exc
    if value <= 0:
        raise ValidationError("Clip number must be a positive integer.")
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings (including a trailing Z) into aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return as_utc(parsed)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    normalized = as_utc(value)
    return normalized.isoformat() if normalized else None
