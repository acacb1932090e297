"""
Pydantic schemas for data validation and serialization.

Schemas:
    catalog: Source catalog entities (Catalog, Record, SourceRecord)
    index: Index service entities (Connection, ConnectionSchema, IndexItem)
    sync: Result types passed between sync components (MapResult, OperationResult,
          BulkResult, FetchResult, SyncSummary)
    api: API endpoint response schemas

Usage:
    from schemas.catalog import Record
    from schemas.index import IndexItem
    from schemas.sync import SyncSummary

Wire format:
    Models use snake_case attributes with camelCase aliases matching the
    remote services; dump with by_alias=True when building request bodies.
"""

__all__ = [
    "Catalog",
    "Record",
    "SourceRecord",
    "Connection",
    "ConnectionSchema",
    "IndexItem",
    "MapResult",
    "OperationResult",
    "BulkResult",
    "FetchResult",
    "SyncSummary",
    "HealthCheckResponse",
    "StatsResponse",
]
