"""
Core utilities and configuration for the glossary search connector.

This package provides foundational components used throughout the sync engine:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory for checkpoint and run history tables
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.exceptions import SourceError, IndexServiceError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()
"""

__all__ = [
    "settings",
    "setup_logging",
    "create_engine",
    "create_session_factory",
    # Exceptions
    "SyncException",
    "ConfigError",
    "AuthenticationError",
    "SourceError",
    "CatalogNotFoundError",
    "CatalogRequestError",
    "MapError",
    "MissingIdentifierError",
    "RecordMappingError",
    "IndexServiceError",
    "IndexNotFoundError",
    "IndexRequestError",
    "ItemEnumerationError",
    "ProvisioningTimeoutError",
    "PersistenceError",
    "SyncInProgressError",
]
