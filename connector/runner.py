"""
Sync Runner - orchestrates checkpoint -> fetch -> map -> push -> checkpoint.

This module provides the run-level contract of the connector:
- Partial failure support (a bad record or catalog never aborts a run)
- Count-based run summaries instead of a single pass/fail
- Checkpoint advancement only when the run's work is safely in the index
- Optional run history and run lock
"""

from typing import Callable, Optional
from contextlib import nullcontext
from datetime import datetime, timezone
import logging

from connector.checkpoint import CheckpointStore
from connector.extractors.glossary_reader import GlossaryReader
from connector.history import RunHistory
from connector.loaders.index_loader import IndexReconciler
from connector.lock import RunLock
from connector.transformers.record_mapper import RecordMapper
from models.base import SyncMode, SyncStatus
from schemas.index import ConnectionState
from schemas.sync import BulkResult, OperationResult, SyncSummary

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncRunner:
    """
    Drives sync runs against one destination connection.

    Checkpoint policy:
    - incremental: advance to the run start iff at least one item was
      pushed or no records were found at all. A run that found records
      but pushed none leaves the checkpoint untouched so the next run
      retries the same window.
    - full: always advance.
    """

    def __init__(
        self,
        reader: GlossaryReader,
        mapper: RecordMapper,
        reconciler: IndexReconciler,
        checkpoint_store: CheckpointStore,
        connection_id: str,
        clock: Callable[[], datetime] = utcnow,
        run_history: Optional[RunHistory] = None,
        run_lock: Optional[RunLock] = None
    ):
        self.reader = reader
        self.mapper = mapper
        self.reconciler = reconciler
        self.checkpoint_store = checkpoint_store
        self.connection_id = connection_id
        self.clock = clock
        self.run_history = run_history
        self.run_lock = run_lock

    async def run_incremental_sync(self, catalog_filter: Optional[str] = None) -> SyncSummary:
        """Push records modified since the last checkpoint"""
        return await self._run(SyncMode.INCREMENTAL, catalog_filter)

    async def run_full_sync(self, catalog_filter: Optional[str] = None) -> SyncSummary:
        """Push every record regardless of the checkpoint"""
        return await self._run(SyncMode.FULL, catalog_filter)

    async def delete_all_items(self, connection_id: Optional[str] = None) -> BulkResult:
        """
        Remove every item from the connection.

        Raises:
            ItemEnumerationError: If the items could not be listed
        """
        return await self.reconciler.delete_all_items(connection_id or self.connection_id)

    async def get_connection_state(self, connection_id: Optional[str] = None) -> Optional[ConnectionState]:
        return await self.reconciler.get_state(connection_id or self.connection_id)

    async def register_schema(self, connection_id: Optional[str] = None) -> OperationResult:
        return await self.reconciler.register_schema(connection_id or self.connection_id)

    async def create_connection(
        self,
        name: str,
        description: Optional[str] = None,
        connection_id: Optional[str] = None
    ) -> OperationResult:
        return await self.reconciler.create_connection(connection_id or self.connection_id, name, description)

    async def delete_connection(self, connection_id: Optional[str] = None) -> OperationResult:
        return await self.reconciler.delete_connection(connection_id or self.connection_id)

    async def check_source(self) -> bool:
        """True when the source catalog answers a glossary listing"""
        return await self.reader.test_connection()

    async def _run(self, mode: SyncMode, catalog_filter: Optional[str]) -> SyncSummary:
        lock = self.run_lock.hold() if self.run_lock else nullcontext()
        with lock:
            return await self._execute(mode, catalog_filter)

    async def _execute(self, mode: SyncMode, catalog_filter: Optional[str]) -> SyncSummary:
        # --------------------------------------------------
        # PHASE 1: CHECKPOINT
        # --------------------------------------------------
        since = None
        if mode == SyncMode.INCREMENTAL:
            since = await self.checkpoint_store.read()
            if since is None:
                logger.info("No checkpoint available; incremental run covers all records")

        run_start = self.clock()
        summary = SyncSummary(
            mode=mode,
            connection_id=self.connection_id,
            catalog_filter=catalog_filter,
            checkpoint_before=since,
            started_at=run_start,
        )

        logger.info(
            f"Starting {mode.value} sync to connection {self.connection_id}"
            + (f" (catalog {catalog_filter})" if catalog_filter else "")
        )

        run_pk = None
        if self.run_history:
            run_pk = await self.run_history.start_run(summary)

        # --------------------------------------------------
        # PHASE 2: FETCH
        # --------------------------------------------------
        fetched = await self.reader.fetch_changed(catalog_filter=catalog_filter, since=since)
        summary.found = len(fetched.records)
        summary.excluded = fetched.excluded
        summary.failed_catalogs = fetched.failed_catalogs

        # --------------------------------------------------
        # PHASE 3: MAP + PUSH
        # --------------------------------------------------
        error_details = []
        for source in fetched.records:
            summary.processed += 1

            mapped = self.mapper.map(source.record, source.catalog_name)
            if not mapped.ok:
                summary.skipped += 1
                error_details.append(mapped.error.to_dict())
                logger.warning(
                    f"Skipping record {source.record.id or '<no id>'} from '{source.catalog_name}': "
                    f"{mapped.error.message}",
                    extra={"error_context": mapped.error.to_dict()}
                )
                continue

            pushed = await self.reconciler.upsert(self.connection_id, mapped.item)
            if pushed.ok:
                summary.succeeded += 1
            else:
                summary.failed += 1
                if pushed.error is not None:
                    error_details.append(pushed.error.to_dict())

        # --------------------------------------------------
        # PHASE 4: CHECKPOINT ADVANCE
        # --------------------------------------------------
        if mode == SyncMode.FULL:
            should_advance = True
        else:
            should_advance = summary.succeeded > 0 or summary.found == 0

        if should_advance:
            summary.checkpoint_advanced = await self.checkpoint_store.write(run_start)
            summary.checkpoint_after = run_start if summary.checkpoint_advanced else since
        else:
            summary.checkpoint_after = since
            logger.warning(
                f"All {summary.found} records failed to sync; checkpoint not advanced. "
                f"The next run will retry the same window."
            )

        # --------------------------------------------------
        # PHASE 5: SUMMARY
        # --------------------------------------------------
        summary.status = self._status_of(summary)
        summary.completed_at = self.clock()

        if self.run_history:
            error_message = None
            if summary.failed or summary.skipped:
                error_message = f"{summary.failed} failed, {summary.skipped} skipped"
            await self.run_history.complete_run(run_pk, summary, error_message=error_message)

        logger.info(
            f"{mode.value.capitalize()} sync completed: {summary.status.value} - "
            f"Found: {summary.found}, Processed: {summary.processed}, Skipped: {summary.skipped}, "
            f"Pushed: {summary.succeeded}, Failed: {summary.failed}, Unmodified: {summary.excluded}"
        )
        if error_details:
            logger.debug(f"Run errors: {error_details}")

        return summary

    @staticmethod
    def _status_of(summary: SyncSummary) -> SyncStatus:
        if summary.found == 0:
            return SyncStatus.FAILED if summary.failed_catalogs else SyncStatus.NO_CHANGES
        if summary.succeeded == 0:
            return SyncStatus.FAILED
        if summary.failed or summary.skipped or summary.failed_catalogs:
            return SyncStatus.PARTIAL
        return SyncStatus.SUCCESS
