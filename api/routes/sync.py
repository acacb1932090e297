"""
Operator endpoints: trigger runs and manage the destination connection
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from api.dependencies import get_runner
from connector.runner import SyncRunner
from core.exceptions import ItemEnumerationError, SyncInProgressError
from schemas.api import (
    BulkDeleteResponse,
    ConnectionCreateRequest,
    ConnectionStateResponse,
    OperationResponse,
)
from schemas.index import Connection, ConnectionSchema
from schemas.sync import SyncSummary
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Sync"])


@router.post("/sync/incremental", response_model=SyncSummary)
async def run_incremental_sync(
    catalog_id: Optional[str] = Query(None, description="Restrict the run to one glossary"),
    runner: SyncRunner = Depends(get_runner)
):
    """Push records modified since the last checkpoint"""
    try:
        return await runner.run_incremental_sync(catalog_filter=catalog_id)
    except SyncInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.post("/sync/full", response_model=SyncSummary)
async def run_full_sync(
    catalog_id: Optional[str] = Query(None, description="Restrict the run to one glossary"),
    runner: SyncRunner = Depends(get_runner)
):
    """Push every record and reset the checkpoint to this run's start"""
    try:
        return await runner.run_full_sync(catalog_filter=catalog_id)
    except SyncInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.get("/connections", response_model=List[Connection])
async def list_connections(runner: SyncRunner = Depends(get_runner)):
    return await runner.reconciler.list_connections()


@router.post("/connections", response_model=OperationResponse, status_code=201)
async def create_connection(request: ConnectionCreateRequest, runner: SyncRunner = Depends(get_runner)):
    """Create a connection; it starts in draft state until a schema is registered"""
    result = await runner.create_connection(request.name, request.description, connection_id=request.id)
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.message)
    return OperationResponse(ok=True, message=result.message, state=result.state)


@router.delete("/connections/{connection_id}", response_model=OperationResponse)
async def delete_connection(connection_id: str, runner: SyncRunner = Depends(get_runner)):
    """Delete a connection with its schema and items. A missing connection counts as deleted."""
    result = await runner.delete_connection(connection_id)
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.message)
    return OperationResponse(ok=True, message=result.message)


@router.get("/connections/{connection_id}/state", response_model=ConnectionStateResponse)
async def get_connection_state(connection_id: str, runner: SyncRunner = Depends(get_runner)):
    state = await runner.get_connection_state(connection_id)
    return ConnectionStateResponse(connection_id=connection_id, state=state)


@router.get("/connections/{connection_id}/schema", response_model=ConnectionSchema, response_model_by_alias=True)
async def get_connection_schema(connection_id: str, runner: SyncRunner = Depends(get_runner)):
    schema = await runner.reconciler.get_schema(connection_id)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"No schema for connection {connection_id}")
    return schema


@router.post("/connections/{connection_id}/schema", response_model=OperationResponse)
async def register_connection_schema(connection_id: str, runner: SyncRunner = Depends(get_runner)):
    """
    Register the glossary schema and wait for provisioning.

    Only a connection in draft state accepts a schema; the response
    reports the final observed connection state.
    """
    result = await runner.register_schema(connection_id)
    return OperationResponse(ok=result.ok, message=result.message, state=result.state)


@router.delete("/connections/{connection_id}/items", response_model=BulkDeleteResponse)
async def delete_all_items(connection_id: str, runner: SyncRunner = Depends(get_runner)):
    """Delete every item on the connection"""
    try:
        result = await runner.delete_all_items(connection_id)
    except ItemEnumerationError as e:
        logger.error(
            f"Could not enumerate items on {connection_id}",
            extra={"error_context": e.to_dict()}
        )
        raise HTTPException(status_code=502, detail=e.message)

    return BulkDeleteResponse(
        connection_id=connection_id,
        succeeded=result.succeeded,
        failed=result.failed
    )
