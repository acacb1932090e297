from sqlalchemy import Column, Integer, String, DateTime, Index
from datetime import datetime, timezone
from models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncCheckpoint(Base):
    """
    Durable single-value storage for the database checkpoint backend.

    Design:
    - One row per key (the connector uses a single fixed key)
    - value holds the raw bytes written by the checkpoint store, decoded as UTF-8
    - The store owns parsing; this table never interprets the value
    """
    __tablename__ = "sync_checkpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)

    key = Column(String(100), nullable=False)
    value = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_sync_checkpoint_key", "key", unique=True),
    )
