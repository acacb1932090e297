"""
Result types passed between the sync components.

Per-record and per-item outcomes are values rather than exceptions so the
runner can count failures without catching errors across layers.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from core.exceptions import MapError, SyncException
from models.base import SyncMode, SyncStatus
from schemas.catalog import SourceRecord
from schemas.index import ConnectionState, IndexItem


class MapResult(BaseModel):
    """Outcome of mapping one record"""
    item: Optional[IndexItem] = None
    error: Optional[MapError] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        return self.item is not None and self.error is None

    @classmethod
    def success(cls, item: IndexItem) -> "MapResult":
        return cls(item=item)

    @classmethod
    def failure(cls, error: MapError) -> "MapResult":
        return cls(error=error)


class OperationResult(BaseModel):
    """Outcome of a single index operation"""
    ok: bool
    message: Optional[str] = None
    state: Optional[ConnectionState] = None
    error: Optional[SyncException] = Field(None, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def success(cls, message: str = None, state: ConnectionState = None) -> "OperationResult":
        return cls(ok=True, message=message, state=state)

    @classmethod
    def failure(
        cls,
        message: str,
        error: SyncException = None,
        state: ConnectionState = None
    ) -> "OperationResult":
        return cls(ok=False, message=message, error=error, state=state)


class BulkResult(BaseModel):
    """Succeeded/failed counts of a bulk index operation"""
    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class FetchResult(BaseModel):
    """Records selected by the source reader for one run"""
    records: List[SourceRecord] = Field(default_factory=list)
    catalogs_scanned: int = 0
    failed_catalogs: int = 0
    excluded: int = 0


class SyncSummary(BaseModel):
    """Count-based summary of one sync run"""
    mode: SyncMode
    connection_id: str
    catalog_filter: Optional[str] = None
    status: SyncStatus = SyncStatus.RUNNING

    found: int = 0
    processed: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0
    excluded: int = 0
    failed_catalogs: int = 0

    checkpoint_before: Optional[datetime] = None
    checkpoint_after: Optional[datetime] = None
    checkpoint_advanced: bool = False

    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def pushed(self) -> int:
        return self.succeeded
