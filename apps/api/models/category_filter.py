"""Active category filter per channel."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from database import Base


class CategoryFilter(Base):
    __tablename__ = "category_filters"

    channel = Column(String, primary_key=True)
    query = Column(String, nullable=False)
    game_ids = Column(JSON, nullable=False)
    game_names = Column(JSON, nullable=False)
    display_name = Column(String, nullable=False)
    clip_count = Column(Integer, nullable=False, default=0)
    nonce = Column(String, nullable=False)
    set_at = Column(DateTime(timezone=True), nullable=False)
