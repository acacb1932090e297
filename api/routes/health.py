"""
Health check endpoint with connection and checkpoint status
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from api.dependencies import get_optional_runner
from connector.runner import SyncRunner
from schemas.api import HealthCheckResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    request: Request,
    runner: Optional[SyncRunner] = Depends(get_optional_runner)
):
    """
    Health check endpoint.

    Returns:
    - Whether the connector is configured
    - State of the destination connection
    - Current checkpoint
    - Scheduler status
    """
    scheduler = getattr(request.app.state, "scheduler", None)
    scheduler_running = bool(scheduler and scheduler.scheduler.running)

    if runner is None:
        return HealthCheckResponse(configured=False, scheduler_running=scheduler_running)

    connection_state = await runner.get_connection_state()
    if connection_state is None:
        logger.warning(f"Health check could not read state of connection {runner.connection_id}")

    last_checkpoint = await runner.checkpoint_store.read()

    return HealthCheckResponse(
        configured=True,
        connection_id=runner.connection_id,
        connection_state=connection_state,
        last_checkpoint=last_checkpoint,
        scheduler_running=scheduler_running,
        history_enabled=runner.run_history is not None
    )
