"""
Wiring: builds the clients, stores and runner from settings.

Nothing here is a process-wide singleton. Each caller builds its own
runner and owns the HTTP client and database engine behind it.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from connector.checkpoint import CheckpointStore, DatabaseCheckpointStorage, FileCheckpointStorage
from connector.clients.auth import ClientCredentialsTokenProvider
from connector.clients.catalog_client import HttpCatalogService
from connector.clients.index_client import HttpIndexService
from connector.extractors.glossary_reader import GlossaryReader
from connector.history import RunHistory
from connector.loaders.index_loader import IndexReconciler
from connector.lock import RunLock
from connector.runner import SyncRunner
from connector.transformers.record_mapper import RecordMapper
from core.config import Settings
from core.database import create_engine, create_session_factory
from core.exceptions import ConfigError

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = ("TENANT_ID", "CLIENT_ID", "CLIENT_SECRET", "CATALOG_ENDPOINT", "CONNECTION_ID")
CHECKPOINT_BACKENDS = ("file", "database")


def validate_settings(settings: Settings) -> None:
    """
    Raises:
        ConfigError: Naming every required setting that is missing or invalid
    """
    missing = [name for name in REQUIRED_SETTINGS if not getattr(settings, name, None)]
    if missing:
        raise ConfigError(
            f"Missing required settings: {', '.join(missing)}",
            context={"missing": missing}
        )

    if settings.CHECKPOINT_BACKEND not in CHECKPOINT_BACKENDS:
        raise ConfigError(
            f"Unknown CHECKPOINT_BACKEND '{settings.CHECKPOINT_BACKEND}'",
            context={"allowed": list(CHECKPOINT_BACKENDS)}
        )

    if "{record_id}" not in settings.ITEM_URL_TEMPLATE:
        raise ConfigError(
            "ITEM_URL_TEMPLATE must contain a {record_id} placeholder",
            context={"template": settings.ITEM_URL_TEMPLATE}
        )


def needs_database(settings: Settings) -> bool:
    return settings.CHECKPOINT_BACKEND == "database" or settings.RECORD_RUN_HISTORY


def build_runner(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    session_factory: Optional[async_sessionmaker] = None
) -> SyncRunner:
    """
    Construct a SyncRunner from settings.

    When ``http_client`` is omitted a new client is created; the caller
    owns it either way. ``session_factory`` is required when the database
    checkpoint backend or run history is enabled.

    Raises:
        ConfigError: If settings are incomplete
    """
    validate_settings(settings)

    if needs_database(settings) and session_factory is None:
        raise ConfigError(
            "A database session factory is required for the database checkpoint backend or run history",
            context={
                "CHECKPOINT_BACKEND": settings.CHECKPOINT_BACKEND,
                "RECORD_RUN_HISTORY": settings.RECORD_RUN_HISTORY,
            }
        )

    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    token_provider = ClientCredentialsTokenProvider(
        http_client,
        tenant_id=settings.TENANT_ID,
        client_id=settings.CLIENT_ID,
        client_secret=settings.CLIENT_SECRET,
        authority=settings.TOKEN_AUTHORITY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )

    catalog_service = HttpCatalogService(
        http_client,
        token_provider,
        endpoint=settings.CATALOG_ENDPOINT,
        scope=settings.CATALOG_SCOPE,
        api_version=settings.CATALOG_API_VERSION,
        page_size=settings.CATALOG_PAGE_SIZE,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    index_service = HttpIndexService(
        http_client,
        token_provider,
        base_url=settings.INDEX_API_URL,
        scope=settings.INDEX_SCOPE,
        page_size=settings.INDEX_PAGE_SIZE,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )

    if settings.CHECKPOINT_BACKEND == "database":
        storage = DatabaseCheckpointStorage(session_factory, key=settings.CHECKPOINT_KEY)
    else:
        storage = FileCheckpointStorage(settings.CHECKPOINT_DIR, key=settings.CHECKPOINT_KEY)

    mapper = RecordMapper(
        tenant_id=settings.TENANT_ID,
        status_translations=settings.STATUS_TRANSLATIONS,
        item_url_template=settings.ITEM_URL_TEMPLATE,
        unknown_label=settings.STATUS_UNKNOWN_LABEL,
    )
    reconciler = IndexReconciler(
        index_service,
        poll_timeout=settings.SCHEMA_POLL_TIMEOUT_SECONDS,
        poll_interval=settings.SCHEMA_POLL_INTERVAL_SECONDS,
    )

    logger.info(
        f"Runner configured: connection={settings.CONNECTION_ID}, "
        f"checkpoint={settings.CHECKPOINT_BACKEND}, history={settings.RECORD_RUN_HISTORY}"
    )

    return SyncRunner(
        reader=GlossaryReader(catalog_service),
        mapper=mapper,
        reconciler=reconciler,
        checkpoint_store=CheckpointStore(storage),
        connection_id=settings.CONNECTION_ID,
        run_history=RunHistory(session_factory) if settings.RECORD_RUN_HISTORY else None,
        run_lock=RunLock(settings.RUN_LOCK_PATH) if settings.RUN_LOCK_PATH else None,
    )


@asynccontextmanager
async def open_runner(settings: Settings) -> AsyncIterator[SyncRunner]:
    """Build a runner and release its HTTP client and database engine on exit"""
    validate_settings(settings)

    engine = None
    session_factory = None
    if needs_database(settings):
        engine = create_engine(settings.DATABASE_URL)
        session_factory = create_session_factory(engine)

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http_client:
        try:
            yield build_runner(settings, http_client=http_client, session_factory=session_factory)
        finally:
            if engine is not None:
                await engine.dispose()
