"""Single-slot command mailbox row per (channel, kind)."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from database import Base


class CommandRequest(Base):
    __tablename__ = "command_requests"

    channel = Column(String, primary_key=True)
    kind = Column(String, primary_key=True)
    nonce = Column(String, nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    window_seconds = Column(Integer, nullable=False)
    payload = Column(JSON, nullable=True)
