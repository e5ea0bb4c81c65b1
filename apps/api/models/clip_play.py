"""Play counters fed by the player when a clip finishes."""

from sqlalchemy import Column, DateTime, Integer, String

from database import Base


class ClipPlay(Base):
    __tablename__ = "clip_plays"

    channel = Column(String, primary_key=True)
    clip_id = Column(String, primary_key=True)
    play_count = Column(Integer, nullable=False, default=0)
    last_played_at = Column(DateTime(timezone=True), nullable=True)
