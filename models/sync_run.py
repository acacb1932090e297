from sqlalchemy import Column, BigInteger, Boolean, String, Enum, DateTime, Float, Integer, Text, Index
from datetime import datetime, timezone
import uuid
from models.base import Base, SyncMode, SyncStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncRun(Base):
    """
    Audit record for each sync execution.

    Purpose:
    - History of incremental and full runs
    - Count-based outcome of each run
    - Checkpoint movement per run
    """
    __tablename__ = "sync_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    run_id = Column(String(36), default=lambda: str(uuid.uuid4()), unique=True, nullable=False, index=True)

    connection_id = Column(String(100), nullable=False, index=True)
    mode = Column(Enum(SyncMode), nullable=False)
    catalog_filter = Column(String(255), nullable=True)

    status = Column(Enum(SyncStatus), default=SyncStatus.RUNNING, nullable=False, index=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    records_found = Column(Integer, default=0)
    records_excluded = Column(Integer, default=0)
    records_skipped = Column(Integer, default=0)
    records_pushed = Column(Integer, default=0)
    records_failed = Column(Integer, default=0)
    catalogs_failed = Column(Integer, default=0)

    # Checkpoint movement
    checkpoint_before = Column(String(64), nullable=True)
    checkpoint_after = Column(String(64), nullable=True)
    checkpoint_advanced = Column(Boolean, default=False, nullable=False)

    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_sync_run_connection_started", "connection_id", "started_at"),
    )
