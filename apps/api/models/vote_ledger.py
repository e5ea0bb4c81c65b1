"""Vote ledger: one row per user per clip."""

import uuid

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.sql import func

from database import Base


class VoteLedger(Base):
    __tablename__ = "vote_ledger"
    __table_args__ = (
        UniqueConstraint("channel", "clip_id", "username", name="uq_vote_ledger_channel_clip_user"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    channel = Column(String, nullable=False, index=True)
    clip_id = Column(String, nullable=False)
    username = Column(String, nullable=False)
    direction = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
