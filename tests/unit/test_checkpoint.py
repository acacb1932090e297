"""
Unit tests for checkpoint storage and the checkpoint store
"""

import pytest
from datetime import datetime, timedelta, timezone

from connector.checkpoint import CheckpointStore, DatabaseCheckpointStorage, FileCheckpointStorage
from core.exceptions import PersistenceError
from tests.fakes import MemoryCheckpointStorage


class TestCheckpointStore:
    """Read never raises; write reports failure as False"""

    @pytest.mark.asyncio
    async def test_read_absent_returns_none(self):
        store = CheckpointStore(MemoryCheckpointStorage())
        assert await store.read() is None

    @pytest.mark.asyncio
    async def test_write_then_read_round_trip(self):
        store = CheckpointStore(MemoryCheckpointStorage())
        value = datetime(2024, 6, 1, 12, 30, 15, 123000, tzinfo=timezone.utc)

        assert await store.write(value) is True
        assert await store.read() == value

    @pytest.mark.asyncio
    async def test_storage_read_error_degrades_to_none(self):
        storage = MemoryCheckpointStorage(b"2024-06-01T12:00:00+00:00")
        storage.fail_reads = True

        assert await CheckpointStore(storage).read() is None

    @pytest.mark.asyncio
    async def test_unparseable_value_degrades_to_none(self):
        store = CheckpointStore(MemoryCheckpointStorage(b"not-a-timestamp"))
        assert await store.read() is None

    @pytest.mark.asyncio
    async def test_non_utf8_value_degrades_to_none(self):
        store = CheckpointStore(MemoryCheckpointStorage(b"\xff\xfe\x00"))
        assert await store.read() is None

    @pytest.mark.asyncio
    async def test_naive_value_is_interpreted_as_utc(self):
        store = CheckpointStore(MemoryCheckpointStorage(b"2024-06-01T12:00:00"))
        assert await store.read() == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_offset_value_is_normalised_to_utc(self):
        store = CheckpointStore(MemoryCheckpointStorage(b"2024-06-01T14:00:00+02:00"))
        value = await store.read()
        assert value == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert value.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_zulu_suffix_is_accepted(self):
        store = CheckpointStore(MemoryCheckpointStorage(b"2024-06-01T12:00:00Z"))
        assert await store.read() == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_write_failure_returns_false(self):
        storage = MemoryCheckpointStorage(b"2024-01-01T00:00:00+00:00")
        storage.fail_writes = True
        store = CheckpointStore(storage)

        assert await store.write(datetime(2024, 6, 1, tzinfo=timezone.utc)) is False
        assert storage.data == b"2024-01-01T00:00:00+00:00"


class TestFileCheckpointStorage:

    @pytest.mark.asyncio
    async def test_missing_file_reads_none(self, tmp_path):
        storage = FileCheckpointStorage(str(tmp_path / "state"))
        assert await storage.read() is None

    @pytest.mark.asyncio
    async def test_write_creates_directory_and_replaces_atomically(self, tmp_path):
        storage = FileCheckpointStorage(str(tmp_path / "state"), key="lastSyncTimestamp")

        await storage.write_atomic(b"first")
        await storage.write_atomic(b"second")

        assert await storage.read() == b"second"
        assert storage.file_path.name == "lastSyncTimestamp.txt"
        assert not storage.file_path.with_suffix(".tmp").exists()

    @pytest.mark.asyncio
    async def test_unwritable_location_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        storage = FileCheckpointStorage(str(blocker / "state"))

        with pytest.raises(PersistenceError):
            await storage.write_atomic(b"value")

    @pytest.mark.asyncio
    async def test_store_over_file_storage(self, tmp_path):
        store = CheckpointStore(FileCheckpointStorage(str(tmp_path)))
        value = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)

        assert await store.write(value)
        assert await CheckpointStore(FileCheckpointStorage(str(tmp_path))).read() == value


class TestDatabaseCheckpointStorage:

    @pytest.mark.asyncio
    async def test_read_without_row_returns_none(self, session_factory):
        storage = DatabaseCheckpointStorage(session_factory)
        assert await storage.read() is None

    @pytest.mark.asyncio
    async def test_write_creates_then_updates_single_row(self, session_factory):
        from sqlalchemy import select, func
        from models.checkpoint import SyncCheckpoint

        storage = DatabaseCheckpointStorage(session_factory, key="lastSyncTimestamp")
        await storage.write_atomic(b"2024-06-01T00:00:00+00:00")
        await storage.write_atomic(b"2024-06-02T00:00:00+00:00")

        assert await storage.read() == b"2024-06-02T00:00:00+00:00"

        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(SyncCheckpoint))).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, session_factory):
        first = DatabaseCheckpointStorage(session_factory, key="a")
        second = DatabaseCheckpointStorage(session_factory, key="b")

        await first.write_atomic(b"one")

        assert await first.read() == b"one"
        assert await second.read() is None
