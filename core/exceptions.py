"""
Custom exceptions for the glossary sync engine with structured error context.

Each exception carries a context dictionary for logging and monitoring.
Per-record and per-catalog failures are reported to the runner as result
values that wrap these exceptions; only configuration errors abort a run.

Exception Hierarchy:
    SyncException (base)
    ├── ConfigError
    ├── AuthenticationError
    ├── SourceError
    │   ├── CatalogNotFoundError
    │   └── CatalogRequestError
    ├── MapError
    │   ├── MissingIdentifierError
    │   └── RecordMappingError
    ├── IndexServiceError
    │   ├── IndexNotFoundError
    │   ├── IndexRequestError
    │   └── ItemEnumerationError
    ├── ProvisioningTimeoutError
    ├── PersistenceError
    └── SyncInProgressError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (connection, record id, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigError(SyncException):
    """
    Raised when a required setting is missing or invalid.

    Fatal at startup: no run is attempted.

    Context should include:
        - missing: List of setting names that are absent
    """
    pass


class AuthenticationError(SyncException):
    """Token acquisition failed or a service answered 401/403."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


# ============================================================================
# Source Errors
# ============================================================================

class SourceError(SyncException):
    """
    Base exception for source catalog failures.

    Caught per catalog by the reader; the run continues with the
    remaining catalogs.

    Context should include:
        - catalog_id: The catalog being read (if applicable)
        - status_code: HTTP status code (if applicable)
    """
    pass


class CatalogNotFoundError(SourceError):
    """The requested catalog does not exist."""
    pass


class CatalogRequestError(SourceError):
    """The source catalog rejected or failed a request."""
    pass


# ============================================================================
# Mapping Errors
# ============================================================================

class MapError(SyncException):
    """Base exception for a record that cannot be mapped. Skips one record."""
    pass


class MissingIdentifierError(MapError):
    """The record has no identifier."""
    pass


class RecordMappingError(MapError):
    """
    The record could not be converted to an index item.

    Context should include:
        - record_id: Identifier of the record
        - catalog_name: Name of the catalog the record belongs to
    """
    pass


# ============================================================================
# Index Errors
# ============================================================================

class IndexServiceError(SyncException):
    """
    Base exception for index service failures.

    Attributes:
        status_code: HTTP status returned by the index service (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class IndexNotFoundError(IndexServiceError):
    """The addressed connection, schema or item does not exist (HTTP 404)."""
    pass


class IndexRequestError(IndexServiceError):
    """
    The index service rejected or failed a request.

    Context should include:
        - connection_id: Target connection
        - item_id: Target item (if applicable)
        - response_body: Response body (truncated)
    """
    pass


class ItemEnumerationError(IndexServiceError):
    """Listing item ids failed; no partial list is returned."""
    pass


# ============================================================================
# Lifecycle Errors
# ============================================================================

class ProvisioningTimeoutError(SyncException):
    """
    Schema provisioning did not reach a terminal state in time.

    Context should include:
        - connection_id: Connection being provisioned
        - last_state: Final observed connection state
        - timeout_seconds: Bound that was exceeded
    """
    pass


class PersistenceError(SyncException):
    """
    Checkpoint storage read/write failure.

    Read failures degrade to a full sync; write failures are logged only.
    """
    pass


class SyncInProgressError(SyncException):
    """Another run holds the run lock."""
    pass
