"""
Checkpoint management for incremental sync.

The checkpoint is the start time of the last run whose reconciliation
succeeded. It is stored as ISO-8601 text under a fixed key by one of the
storage backends below and interpreted only by CheckpointStore.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from connector.base import CheckpointStorage
from core.exceptions import PersistenceError
from models.checkpoint import SyncCheckpoint

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_KEY = "lastSyncTimestamp"


class FileCheckpointStorage(CheckpointStorage):
    """Checkpoint stored in a local file, replaced atomically on write"""

    def __init__(self, directory: str, key: str = DEFAULT_CHECKPOINT_KEY):
        self.directory = Path(directory)
        self.key = key
        self.file_path = self.directory / f"{key}.txt"

    def _read(self) -> Optional[bytes]:
        if not self.file_path.exists():
            return None
        return self.file_path.read_bytes()

    def _write(self, data: bytes):
        self.directory.mkdir(parents=True, exist_ok=True)
        # Write to temp file first, then atomic rename
        temp_file = self.file_path.with_suffix(".tmp")
        temp_file.write_bytes(data)
        temp_file.replace(self.file_path)

    async def read(self) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._read)
        except OSError as e:
            raise PersistenceError(
                "Failed to read checkpoint file",
                context={"file_path": str(self.file_path), "operation": "read"},
                original_exception=e
            )

    async def write_atomic(self, data: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, data)
        except OSError as e:
            raise PersistenceError(
                "Failed to write checkpoint file",
                context={"file_path": str(self.file_path), "operation": "write"},
                original_exception=e
            )


class DatabaseCheckpointStorage(CheckpointStorage):
    """Checkpoint stored as a single row of the sync_checkpoints table"""

    def __init__(self, session_factory: async_sessionmaker, key: str = DEFAULT_CHECKPOINT_KEY):
        self.session_factory = session_factory
        self.key = key

    async def read(self) -> Optional[bytes]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(SyncCheckpoint).where(SyncCheckpoint.key == self.key)
                )
                row = result.scalar_one_or_none()
        except Exception as e:
            raise PersistenceError(
                "Failed to read checkpoint row",
                context={"key": self.key, "operation": "read"},
                original_exception=e
            )

        if row is None or row.value is None:
            return None
        return row.value.encode("utf-8")

    async def write_atomic(self, data: bytes) -> None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(SyncCheckpoint).where(SyncCheckpoint.key == self.key)
                )
                row = result.scalar_one_or_none()

                if row is None:
                    session.add(SyncCheckpoint(key=self.key, value=data.decode("utf-8")))
                else:
                    row.value = data.decode("utf-8")
                    row.updated_at = datetime.now(timezone.utc)

                await session.commit()
        except Exception as e:
            raise PersistenceError(
                "Failed to write checkpoint row",
                context={"key": self.key, "operation": "write"},
                original_exception=e
            )


class CheckpointStore:
    """
    Reads and writes the last-sync timestamp.

    Neither operation raises: an unreadable checkpoint means a full sync,
    and a failed write only means the next run redoes this run's window.
    """

    def __init__(self, storage: CheckpointStorage):
        self.storage = storage

    async def read(self) -> Optional[datetime]:
        """Return the checkpoint as an aware UTC datetime, or None"""
        try:
            raw = await self.storage.read()
        except PersistenceError as e:
            logger.error(
                f"Error reading checkpoint '{self.storage.key}'. Performing full sync as a precaution.",
                extra={"error_context": e.to_dict()}
            )
            return None
        except Exception as e:
            logger.error(
                f"Unexpected error reading checkpoint '{self.storage.key}': {str(e)}. "
                f"Performing full sync as a precaution."
            )
            return None

        if raw is None:
            logger.info(f"No checkpoint '{self.storage.key}' found. Assuming first run.")
            return None

        try:
            text = raw.decode("utf-8").strip()
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except (UnicodeDecodeError, ValueError):
            logger.warning(
                f"Could not parse checkpoint value {raw[:64]!r} from '{self.storage.key}'. "
                f"Performing full sync."
            )
            return None

        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)

        return value.astimezone(timezone.utc)

    async def write(self, value: datetime) -> bool:
        """Persist a new checkpoint. Returns False if the write failed."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        text = value.astimezone(timezone.utc).isoformat()

        try:
            await self.storage.write_atomic(text.encode("utf-8"))
        except Exception as e:
            logger.error(
                f"Failed to update checkpoint '{self.storage.key}' to {text}. "
                f"The next run will repeat this window: {str(e)}"
            )
            return False

        logger.info(f"Checkpoint '{self.storage.key}' updated to {text}")
        return True
