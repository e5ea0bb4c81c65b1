"""Turn raw Twitch/Kick clip payloads into ClipDescriptor objects."""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from services.common import parse_datetime
from services.importers.types import (
    SUPPORTED_PLATFORMS,
    ClipDescriptor,
    ClipNormalizationError,
    PlatformKey,
)


DEFAULT_DURATION_SECONDS = 30
UNTITLED = "Untitled Clip"


def _finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _safe_int(value: Any, default: int = 0) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = _finite(value)
    return int(number) if number is not None else default


def _duration(value: Any) -> int:
    seconds = _finite(value)
    if seconds is None or seconds <= 0:
        return DEFAULT_DURATION_SECONDS
    return max(int(math.ceil(seconds)), 1)


def _text(value: Any) -> str:
    return str(value or "").strip()


def normalize_twitch_clip(raw: Dict[str, Any]) -> ClipDescriptor:
    clip_id = _text(raw.get("id") or raw.get("clip_id"))
    if not clip_id:
        raise ClipNormalizationError("Twitch clip is missing 'id'")
    game_id = _text(raw.get("game_id")) or None
    return ClipDescriptor(
        platform="twitch",
        platform_clip_id=clip_id,
        title=_text(raw.get("title")) or UNTITLED,
        duration_seconds=_duration(raw.get("duration")),
        created_at=parse_datetime(raw.get("created_at")),
        view_count=max(_safe_int(raw.get("view_count")), 0),
        game_id=game_id,
        game_name=_text(raw.get("game_name")) or None,
        creator_name=_text(raw.get("creator_name")) or None,
        thumbnail_url=_text(raw.get("thumbnail_url")) or None,
    )


def normalize_kick_clip(raw: Dict[str, Any]) -> ClipDescriptor:
    clip_id = _text(raw.get("id") or raw.get("clip_id"))
    if not clip_id:
        raise ClipNormalizationError("Kick clip is missing 'id'")

    thumbnail = raw.get("thumbnail")
    if isinstance(thumbnail, dict):
        thumbnail_url = _text(thumbnail.get("src") or thumbnail.get("url"))
    else:
        thumbnail_url = _text(thumbnail or raw.get("thumbnail_url"))

    creator = raw.get("creator")
    if isinstance(creator, dict):
        creator_name = _text(creator.get("username") or creator.get("slug"))
    else:
        creator_name = _text(raw.get("creator_name"))

    # Kick category ids share a namespace with Twitch game ids, so they are prefixed.
    game_id = None
    game_name = None
    category = raw.get("category")
    if isinstance(category, dict) and _text(category.get("id")):
        game_id = f"kick_{_text(category.get('id'))}"
        game_name = _text(category.get("name")) or None

    return ClipDescriptor(
        platform="kick",
        platform_clip_id=clip_id,
        title=_text(raw.get("title")) or UNTITLED,
        duration_seconds=_duration(raw.get("duration")),
        created_at=parse_datetime(raw.get("created_at")),
        view_count=max(_safe_int(raw.get("views", raw.get("view_count"))), 0),
        game_id=game_id,
        game_name=game_name,
        creator_name=creator_name or None,
        thumbnail_url=thumbnail_url or None,
    )


_NORMALIZERS = {
    "twitch": normalize_twitch_clip,
    "kick": normalize_kick_clip,
}


def normalize_batch(
    platform: PlatformKey,
    raw_clips: Iterable[Dict[str, Any]],
) -> Tuple[List[ClipDescriptor], List[Dict[str, Any]]]:
    """Normalize a batch, collecting per-item errors instead of failing the batch."""
    if platform not in SUPPORTED_PLATFORMS:
        raise ClipNormalizationError(f"Unsupported platform '{platform}'")
    normalizer = _NORMALIZERS[platform]
    descriptors: List[ClipDescriptor] = []
    errors: List[Dict[str, Any]] = []
    for index, raw in enumerate(raw_clips):
        if not isinstance(raw, dict):
            errors.append({"index": index, "error": "clip payload must be an object"})
            continue
        try:
            descriptors.append(normalizer(raw))
        except ClipNormalizationError as exc:
            errors.append({"index": index, "error": str(exc)})
    return descriptors, errors
