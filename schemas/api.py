"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict
from datetime import datetime, timezone

from models.base import SyncMode, SyncStatus
from schemas.index import ConnectionState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_utcnow)
    configured: bool
    connection_id: Optional[str] = None
    connection_state: Optional[ConnectionState] = None
    last_checkpoint: Optional[datetime] = None
    scheduler_running: bool = False
    history_enabled: bool = False

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if not self.configured:
            self.status = "unhealthy"
        elif self.connection_state == ConnectionState.READY:
            self.status = "healthy"
        else:
            self.status = "degraded"
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "configured": True,
                "connection_id": "glossaryterms",
                "connection_state": "ready",
                "last_checkpoint": "2024-01-15T10:00:00Z",
                "scheduler_running": True,
                "history_enabled": False
            }
        }
    )


# ============================================================================
# Statistics Schemas
# ============================================================================

class SyncRunSummary(BaseModel):
    """Summary of one recorded sync run"""
    run_id: str
    connection_id: str
    mode: SyncMode
    status: SyncStatus
    catalog_filter: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    records_found: int = 0
    records_pushed: int = 0
    records_failed: int = 0
    records_skipped: int = 0
    checkpoint_advanced: bool = False

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(BaseModel):
    """Sync statistics response"""
    timestamp: datetime = Field(default_factory=_utcnow)
    history_enabled: bool
    total_runs: int = 0
    runs_by_status: Dict[str, int] = Field(default_factory=dict)
    total_items_pushed: int = 0
    average_run_duration_seconds: Optional[float] = None
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    recent_runs: List[SyncRunSummary] = Field(default_factory=list)
    request_id: str


# ============================================================================
# Operator Schemas
# ============================================================================

class OperationResponse(BaseModel):
    """Outcome of an operator action on a connection"""
    ok: bool
    message: Optional[str] = None
    state: Optional[ConnectionState] = None


class ConnectionCreateRequest(BaseModel):
    id: str = Field(..., min_length=3, max_length=32, pattern=r"^[A-Za-z0-9]+$")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class ConnectionStateResponse(BaseModel):
    connection_id: str
    state: Optional[ConnectionState] = None


class BulkDeleteResponse(BaseModel):
    connection_id: str
    succeeded: int
    failed: int


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    context: Optional[Dict] = None
    timestamp: datetime = Field(default_factory=_utcnow)
