"""Now-playing register: one row per channel."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from database import Base


class NowPlaying(Base):
    """Currently presented clip plus controller heartbeat bookkeeping."""

    __tablename__ = "now_playing"

    channel = Column(String, primary_key=True)
    clip_id = Column(String, nullable=False)
    seq = Column(Integer, nullable=True)
    title = Column(String, nullable=True)
    duration = Column(Integer, nullable=False, default=30)
    started_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    controller_id = Column(String, nullable=True)
    contested_at = Column(DateTime(timezone=True), nullable=True)
    playlist_index = Column(Integer, nullable=True)
    playlist_ids = Column(JSON, nullable=True)
