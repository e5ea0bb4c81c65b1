"""Channel model: tenant row used to serialize sequence allocation."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from database import Base


class Channel(Base):
    """A streamer whose clips live in the catalog."""

    __tablename__ = "channels"

    login = Column(String, primary_key=True)
    seq_bootstrapped_at = Column(DateTime(timezone=True), nullable=True)
    last_refresh_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
