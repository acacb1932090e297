"""
Sync statistics and run history endpoint
"""
from fastapi import APIRouter, Depends, Query, Request
from api.dependencies import get_runner
from connector.runner import SyncRunner
from schemas.api import StatsResponse, SyncRunSummary
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    runner: SyncRunner = Depends(get_runner)
):
    """
    Get sync statistics.

    Returns:
    - Totals across recorded runs (runs by status, items pushed)
    - Recent run history

    Run history must be enabled with RECORD_RUN_HISTORY; otherwise the
    response only reports that history is disabled.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")

    logger.info(f"[{request_id}] GET /stats")

    if runner.run_history is None:
        return StatsResponse(history_enabled=False, request_id=request_id)

    totals = await runner.run_history.aggregate()
    recent = await runner.run_history.recent_runs(limit=limit)

    logger.info(
        f"[{request_id}] Stats: {totals['total_runs']} runs, "
        f"{totals['total_items_pushed']} items pushed"
    )

    return StatsResponse(
        history_enabled=True,
        recent_runs=[SyncRunSummary.model_validate(run) for run in recent],
        request_id=request_id,
        **totals
    )
