"""Per-clip vote counters."""

import uuid

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base


class ClipVote(Base):
    __tablename__ = "clip_votes"
    __table_args__ = (UniqueConstraint("channel", "clip_id", name="uq_clip_votes_channel_clip_id"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    channel = Column(String, nullable=False, index=True)
    clip_id = Column(String, nullable=False)
    seq = Column(Integer, nullable=False)
    title = Column(String, nullable=True)
    up_votes = Column(Integer, nullable=False, default=0)
    down_votes = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
