"""Importer contracts shared by the catalog and its upstream adapters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional


PlatformKey = Literal["twitch", "kick"]
SUPPORTED_PLATFORMS = ("twitch", "kick")


class ClipNormalizationError(ValueError):
    """Raised when an upstream clip payload is missing required fields."""


@dataclass(frozen=True)
class ClipDescriptor:
    platform: PlatformKey
    platform_clip_id: str
    title: str
    duration_seconds: int
    created_at: Optional[datetime]
    view_count: int
    game_id: Optional[str]
    game_name: Optional[str]
    creator_name: Optional[str]
    thumbnail_url: Optional[str]

