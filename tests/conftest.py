"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio

from connector.checkpoint import CheckpointStore
from connector.extractors.glossary_reader import GlossaryReader
from connector.loaders.index_loader import IndexReconciler
from connector.runner import SyncRunner
from connector.transformers.record_mapper import RecordMapper
from core.database import create_engine, create_session_factory, create_tables
from tests.fakes import (
    CONNECTION_ID,
    RUN_START,
    TENANT_ID,
    FakeCatalogService,
    FakeIndexService,
    MemoryCheckpointStorage,
)


@pytest.fixture
def catalog_service():
    return FakeCatalogService()


@pytest.fixture
def index_service():
    return FakeIndexService()


@pytest.fixture
def checkpoint_storage():
    return MemoryCheckpointStorage()


@pytest.fixture
def mapper():
    return RecordMapper(tenant_id=TENANT_ID)


@pytest.fixture
def runner(catalog_service, index_service, checkpoint_storage, mapper):
    """SyncRunner wired to the fakes with a fixed clock"""
    return SyncRunner(
        reader=GlossaryReader(catalog_service),
        mapper=mapper,
        reconciler=IndexReconciler(index_service),
        checkpoint_store=CheckpointStore(checkpoint_storage),
        connection_id=CONNECTION_ID,
        clock=lambda: RUN_START,
    )


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite database"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'sync_test.db'}")
    await create_tables(engine)

    yield create_session_factory(engine)

    await engine.dispose()


@pytest.fixture
def mock_term_payloads():
    """Atlas glossary term payloads"""
    return [
        {
            "guid": "term-001",
            "name": "Customer",
            "longDescription": "<p>A person or organisation that buys &amp; uses services.</p>",
            "shortDescription": "Buyer",
            "status": "Approved",
            "abbreviation": "CUST",
            "updateTime": 1717243200000
        },
        {
            "guid": "term-002",
            "name": "Order",
            "shortDescription": "A request to purchase",
            "status": "Draft"
        }
    ]
