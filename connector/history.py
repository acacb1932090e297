"""
Sync run history - one SyncRun row per run.

History is an audit trail only; a failure to record a run is logged and
never fails the run itself.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from models.base import SyncStatus
from models.sync_run import SyncRun
from schemas.sync import SyncSummary

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class RunHistory:
    """Records sync runs in the sync_runs table"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def start_run(self, summary: SyncSummary) -> Optional[int]:
        """Create a RUNNING row; returns its primary key, or None on failure"""
        try:
            async with self.session_factory() as session:
                run = SyncRun(
                    connection_id=summary.connection_id,
                    mode=summary.mode,
                    catalog_filter=summary.catalog_filter,
                    status=SyncStatus.RUNNING,
                    started_at=summary.started_at,
                    checkpoint_before=_iso(summary.checkpoint_before),
                )
                session.add(run)
                await session.commit()
                await session.refresh(run)
                return run.id
        except Exception as e:
            logger.error(f"Failed to record start of sync run: {str(e)}")
            return None

    async def complete_run(
        self,
        run_pk: Optional[int],
        summary: SyncSummary,
        error_message: Optional[str] = None
    ) -> bool:
        """Finalize the run row with counts and checkpoint movement"""
        if run_pk is None:
            return False

        try:
            async with self.session_factory() as session:
                run = await session.get(SyncRun, run_pk)
                if run is None:
                    logger.warning(f"Sync run {run_pk} vanished before completion")
                    return False

                run.status = summary.status
                run.completed_at = summary.completed_at
                if summary.completed_at is not None:
                    run.duration_seconds = (summary.completed_at - summary.started_at).total_seconds()
                run.records_found = summary.found
                run.records_excluded = summary.excluded
                run.records_skipped = summary.skipped
                run.records_pushed = summary.succeeded
                run.records_failed = summary.failed
                run.catalogs_failed = summary.failed_catalogs
                run.checkpoint_after = _iso(summary.checkpoint_after)
                run.checkpoint_advanced = summary.checkpoint_advanced
                run.error_message = error_message

                await session.commit()
                return True
        except Exception as e:
            logger.error(f"Failed to record completion of sync run {run_pk}: {str(e)}")
            return False

    async def recent_runs(self, limit: int = 10, connection_id: Optional[str] = None) -> List[SyncRun]:
        async with self.session_factory() as session:
            query = select(SyncRun).order_by(SyncRun.started_at.desc()).limit(limit)
            if connection_id:
                query = query.where(SyncRun.connection_id == connection_id)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def aggregate(self) -> Dict[str, Any]:
        """Totals across all recorded runs"""
        async with self.session_factory() as session:
            total_runs = (await session.execute(
                select(func.count()).select_from(SyncRun)
            )).scalar() or 0

            by_status_rows = (await session.execute(
                select(SyncRun.status, func.count()).group_by(SyncRun.status)
            )).all()

            pushed = (await session.execute(
                select(func.coalesce(func.sum(SyncRun.records_pushed), 0))
            )).scalar() or 0

            avg_duration = (await session.execute(
                select(func.avg(SyncRun.duration_seconds)).where(
                    SyncRun.duration_seconds.isnot(None)
                )
            )).scalar()

            last_success = (await session.execute(
                select(func.max(SyncRun.completed_at)).where(
                    SyncRun.status.in_([SyncStatus.SUCCESS, SyncStatus.NO_CHANGES])
                )
            )).scalar()

            last_failure = (await session.execute(
                select(func.max(SyncRun.completed_at)).where(
                    SyncRun.status == SyncStatus.FAILED
                )
            )).scalar()

        by_status = {}
        for status, count in by_status_rows:
            key = status.value if isinstance(status, SyncStatus) else str(status)
            by_status[key] = count

        return {
            "total_runs": total_runs,
            "runs_by_status": by_status,
            "total_items_pushed": int(pushed),
            "average_run_duration_seconds": round(avg_duration, 2) if avg_duration else None,
            "last_success_at": last_success,
            "last_failure_at": last_failure,
        }
