"""Clip model with its permanent per-channel sequence number."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base


class Clip(Base):
    """One imported clip. Never physically deleted; moderation flips `blocked`."""

    __tablename__ = "clips"
    __table_args__ = (
        UniqueConstraint("channel", "platform_clip_id", name="uq_clips_channel_platform_clip_id"),
        UniqueConstraint("channel", "seq", name="uq_clips_channel_seq"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    channel = Column(String, ForeignKey("channels.login"), nullable=False, index=True)
    platform_clip_id = Column(String, nullable=False)
    seq = Column(Integer, nullable=False)
    platform = Column(String, nullable=False, default="twitch")
    title = Column(String, nullable=True)
    duration_seconds = Column(Integer, nullable=False, default=30)
    created_at = Column(DateTime(timezone=True), nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    game_id = Column(String, ForeignKey("games.game_id"), nullable=True, index=True)
    creator_name = Column(String, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    blocked = Column(Boolean, nullable=False, default=False, index=True)
    imported_at = Column(DateTime(timezone=True), server_default=func.now())
