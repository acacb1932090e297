"""
End-to-end sync runs against in-memory services
"""

import pytest
from datetime import timedelta

from connector.checkpoint import CheckpointStore, DatabaseCheckpointStorage
from connector.extractors.glossary_reader import GlossaryReader
from connector.history import RunHistory
from connector.loaders.index_loader import IndexReconciler
from connector.lock import RunLock
from connector.runner import SyncRunner
from core.exceptions import SyncInProgressError
from models.base import SyncMode, SyncStatus
from tests.fakes import CONNECTION_ID, RUN_START, epoch_ms, make_record


CHECKPOINT = RUN_START - timedelta(hours=1)
BEFORE_CHECKPOINT = epoch_ms(CHECKPOINT - timedelta(days=1))
AFTER_CHECKPOINT = epoch_ms(CHECKPOINT + timedelta(minutes=10))


def set_checkpoint(storage, value):
    storage.data = value.isoformat().encode("utf-8")


@pytest.mark.asyncio
async def test_incremental_sync_pushes_only_changed_records(
    runner, catalog_service, index_service, checkpoint_storage
):
    """
    Two glossaries: A holds an unmodified term, B a new one.
    Exactly one item is pushed and the checkpoint moves to the run start.
    """

    # -------------------------------------------------------
    # STEP 1: Seed source and checkpoint
    # -------------------------------------------------------
    catalog_service.add_catalog("glossary-a", "Glossary A", [
        make_record("term-old", name="Old", last_modified=BEFORE_CHECKPOINT),
    ])
    catalog_service.add_catalog("glossary-b", "Glossary B", [
        make_record("term-new", name="New", status="Approved", last_modified=AFTER_CHECKPOINT),
    ])
    set_checkpoint(checkpoint_storage, CHECKPOINT)

    # -------------------------------------------------------
    # STEP 2: Run
    # -------------------------------------------------------
    summary = await runner.run_incremental_sync()

    # -------------------------------------------------------
    # STEP 3: Validate
    # -------------------------------------------------------
    assert summary.mode == SyncMode.INCREMENTAL
    assert summary.status == SyncStatus.SUCCESS
    assert (summary.found, summary.succeeded, summary.failed, summary.skipped) == (1, 1, 0, 0)
    assert summary.excluded == 1

    assert index_service.put_calls == ["term-new"]
    pushed = index_service.items[CONNECTION_ID]["term-new"]
    assert pushed["properties"]["glossaryName"] == "Glossary B"
    assert pushed["properties"]["status"] == "Anbefalt"

    assert summary.checkpoint_before == CHECKPOINT
    assert summary.checkpoint_after == RUN_START
    assert summary.checkpoint_advanced is True
    assert await CheckpointStore(checkpoint_storage).read() == RUN_START


@pytest.mark.asyncio
async def test_first_run_without_checkpoint_pushes_everything(runner, catalog_service, index_service):
    catalog_service.add_catalog("g1", "Sales", [
        make_record("a", last_modified=BEFORE_CHECKPOINT),
        make_record("b"),
    ])

    summary = await runner.run_incremental_sync()

    assert summary.checkpoint_before is None
    assert summary.succeeded == 2
    assert set(index_service.items[CONNECTION_ID]) == {"a", "b"}
    assert summary.checkpoint_after == RUN_START


@pytest.mark.asyncio
async def test_no_changes_still_advances_checkpoint(runner, catalog_service, index_service, checkpoint_storage):
    catalog_service.add_catalog("g1", "Sales", [make_record("a", last_modified=BEFORE_CHECKPOINT)])
    set_checkpoint(checkpoint_storage, CHECKPOINT)

    summary = await runner.run_incremental_sync()

    assert summary.status == SyncStatus.NO_CHANGES
    assert summary.found == 0
    assert index_service.put_calls == []
    assert summary.checkpoint_advanced is True
    assert await CheckpointStore(checkpoint_storage).read() == RUN_START


@pytest.mark.asyncio
async def test_full_sync_ignores_checkpoint(runner, catalog_service, index_service, checkpoint_storage):
    catalog_service.add_catalog("g1", "Sales", [make_record("a", last_modified=BEFORE_CHECKPOINT)])
    set_checkpoint(checkpoint_storage, CHECKPOINT)

    summary = await runner.run_full_sync()

    assert summary.mode == SyncMode.FULL
    assert summary.checkpoint_before is None
    assert index_service.put_calls == ["a"]
    assert await CheckpointStore(checkpoint_storage).read() == RUN_START


@pytest.mark.asyncio
async def test_catalog_filter_limits_run(runner, catalog_service, index_service):
    catalog_service.add_catalog("g1", "Sales", [make_record("a")])
    catalog_service.add_catalog("g2", "Finance", [make_record("b")])

    summary = await runner.run_incremental_sync(catalog_filter="g2")

    assert summary.catalog_filter == "g2"
    assert index_service.put_calls == ["b"]


@pytest.mark.asyncio
async def test_repeated_full_sync_produces_identical_items(runner, catalog_service, index_service):
    catalog_service.add_catalog("g1", "Sales", [
        make_record("a", long_description="<p>Alpha &amp; beta</p>", status="Expired", last_modified=1),
    ])

    await runner.run_full_sync()
    first = dict(index_service.items[CONNECTION_ID])
    await runner.run_full_sync()

    assert index_service.items[CONNECTION_ID] == first
    assert len(index_service.items[CONNECTION_ID]) == 1


@pytest.mark.asyncio
async def test_unmappable_record_is_skipped(runner, catalog_service, index_service):
    catalog_service.add_catalog("g1", "Sales", [make_record(None, name="No id"), make_record("b")])

    summary = await runner.run_incremental_sync()

    assert summary.status == SyncStatus.PARTIAL
    assert (summary.found, summary.processed, summary.skipped, summary.succeeded) == (2, 2, 1, 1)
    assert index_service.put_calls == ["b"]


@pytest.mark.asyncio
async def test_runs_are_recorded_with_database_checkpoint(session_factory, catalog_service, index_service, mapper):
    """Database checkpoint backend and run history share one database"""
    catalog_service.add_catalog("g1", "Sales", [make_record("a"), make_record("b")])
    index_service.failing_puts.add("b")

    history = RunHistory(session_factory)
    runner = SyncRunner(
        reader=GlossaryReader(catalog_service),
        mapper=mapper,
        reconciler=IndexReconciler(index_service),
        checkpoint_store=CheckpointStore(DatabaseCheckpointStorage(session_factory)),
        connection_id=CONNECTION_ID,
        clock=lambda: RUN_START,
        run_history=history,
    )

    summary = await runner.run_incremental_sync()

    assert summary.status == SyncStatus.PARTIAL
    assert await runner.checkpoint_store.read() == RUN_START

    runs = await history.recent_runs()
    assert len(runs) == 1
    assert runs[0].status == SyncStatus.PARTIAL
    assert (runs[0].records_found, runs[0].records_pushed, runs[0].records_failed) == (2, 1, 1)
    assert runs[0].error_message == "1 failed, 0 skipped"

    totals = await history.aggregate()
    assert totals["total_items_pushed"] == 1


@pytest.mark.asyncio
async def test_overlapping_run_is_refused(runner, catalog_service, index_service, checkpoint_storage, tmp_path):
    catalog_service.add_catalog("g1", "Sales", [make_record("a")])
    lock_path = str(tmp_path / "sync.lock")
    runner.run_lock = RunLock(lock_path)

    with RunLock(lock_path).hold():
        with pytest.raises(SyncInProgressError):
            await runner.run_incremental_sync()

    assert index_service.put_calls == []
    assert checkpoint_storage.writes == 0

    summary = await runner.run_incremental_sync()
    assert summary.succeeded == 1
    assert not runner.run_lock.is_held
