"""Routers package."""

from . import (
    health,
    catalog,
    playback,
    commands,
    moderation,
    category,
    votes,
)
