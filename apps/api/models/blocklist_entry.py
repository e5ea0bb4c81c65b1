"""Moderation overlay row for a removed clip."""

import uuid

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base


class BlocklistEntry(Base):
    """Snapshot of seq/title taken when a moderator removed the clip."""

    __tablename__ = "blocklist"
    __table_args__ = (UniqueConstraint("channel", "clip_id", name="uq_blocklist_channel_clip_id"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    channel = Column(String, nullable=False, index=True)
    clip_id = Column(String, nullable=False)
    seq = Column(Integer, nullable=False)
    title = Column(String, nullable=True)
    removed_by = Column(String, nullable=True)
    removed_at = Column(DateTime(timezone=True), server_default=func.now())
