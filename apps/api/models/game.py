"""Game metadata cache shared by all channels."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from database import Base


class Game(Base):
    """Upstream category id resolved to a display name."""

    __tablename__ = "games"

    game_id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    box_art_url = Column(String, nullable=True)
    fetched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
