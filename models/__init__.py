"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (SyncMode, SyncStatus)
    checkpoint: Key/value row backing the database checkpoint storage
    sync_run: Sync execution history and counts

Usage:
    from models.checkpoint import SyncCheckpoint
    from models.sync_run import SyncRun
    from models.base import SyncMode, SyncStatus
"""

__all__ = [
    "Base",
    "SyncMode",
    "SyncStatus",
    "SyncCheckpoint",
    "SyncRun",
]
