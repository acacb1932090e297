"""
API endpoint tests
"""

import pytest
from datetime import timedelta
from fastapi.testclient import TestClient

from api.dependencies import get_optional_runner, get_runner
from api.main import app
from connector.lock import RunLock
from core.exceptions import IndexRequestError, PersistenceError
from models.base import SyncMode, SyncStatus
from models.sync_run import SyncRun
from schemas.index import ConnectionState
from tests.fakes import CONNECTION_ID, RUN_START, make_record


class StubHistory:
    """Run history returning canned totals"""

    def __init__(self, runs):
        self.runs = runs

    async def aggregate(self):
        return {
            "total_runs": len(self.runs),
            "runs_by_status": {"success": len(self.runs)},
            "total_items_pushed": sum(run.records_pushed for run in self.runs),
            "average_run_duration_seconds": 12.5,
            "last_success_at": RUN_START,
            "last_failure_at": None,
        }

    async def recent_runs(self, limit=10, connection_id=None):
        return self.runs[:limit]


def recorded_run(pushed: int) -> SyncRun:
    return SyncRun(
        run_id=f"run-{pushed}",
        connection_id=CONNECTION_ID,
        mode=SyncMode.INCREMENTAL,
        status=SyncStatus.SUCCESS,
        catalog_filter=None,
        started_at=RUN_START,
        completed_at=RUN_START + timedelta(seconds=12),
        duration_seconds=12.5,
        records_found=pushed,
        records_pushed=pushed,
        records_failed=0,
        records_skipped=0,
        checkpoint_advanced=True,
    )


@pytest.fixture
def client(runner):
    """Test client with the connector runner overridden"""
    app.dependency_overrides[get_runner] = lambda: runner
    app.dependency_overrides[get_optional_runner] = lambda: runner

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client():
    app.dependency_overrides.clear()
    yield TestClient(app)


def test_root_endpoint(unconfigured_client):
    response = unconfigured_client.get("/")

    assert response.status_code == 200
    assert response.json()["health"] == "/health"


class TestHealth:

    def test_healthy_when_connection_ready(self, client, checkpoint_storage):
        checkpoint_storage.data = b"2024-06-01T11:00:00+00:00"

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["configured"] is True
        assert data["connection_id"] == CONNECTION_ID
        assert data["connection_state"] == "ready"
        assert data["last_checkpoint"].startswith("2024-06-01T11:00:00")
        assert data["scheduler_running"] is False

    def test_degraded_when_connection_not_ready(self, client, index_service):
        index_service.state_sequence = [ConnectionState.DRAFT]

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["connection_state"] == "draft"

    def test_unhealthy_when_not_configured(self, unconfigured_client):
        data = unconfigured_client.get("/health").json()

        assert data["status"] == "unhealthy"
        assert data["configured"] is False


class TestSyncEndpoints:

    def test_incremental_sync(self, client, catalog_service, index_service):
        catalog_service.add_catalog("g1", "Sales", [make_record("a"), make_record("b")])

        response = client.post("/sync/incremental")

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "incremental"
        assert data["status"] == "success"
        assert data["succeeded"] == 2
        assert data["checkpoint_advanced"] is True
        assert set(index_service.items[CONNECTION_ID]) == {"a", "b"}

    def test_full_sync_with_catalog_filter(self, client, catalog_service, index_service):
        catalog_service.add_catalog("g1", "Sales", [make_record("a")])
        catalog_service.add_catalog("g2", "Finance", [make_record("b")])

        data = client.post("/sync/full", params={"catalog_id": "g2"}).json()

        assert data["mode"] == "full"
        assert data["catalog_filter"] == "g2"
        assert index_service.put_calls == ["b"]

    def test_overlapping_run_returns_conflict(self, client, runner, tmp_path):
        lock_path = str(tmp_path / "sync.lock")
        runner.run_lock = RunLock(lock_path)

        with RunLock(lock_path).hold():
            response = client.post("/sync/incremental")

        assert response.status_code == 409

    def test_unconfigured_connector_returns_503(self, unconfigured_client):
        assert unconfigured_client.post("/sync/incremental").status_code == 503
        assert unconfigured_client.get("/connections").status_code == 503


class TestStats:

    def test_history_disabled(self, client):
        data = client.get("/stats").json()

        assert data["history_enabled"] is False
        assert data["total_runs"] == 0
        assert data["request_id"].startswith("req_")

    def test_history_enabled(self, client, runner):
        runner.run_history = StubHistory([recorded_run(3), recorded_run(5)])

        response = client.get("/stats", params={"limit": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["history_enabled"] is True
        assert data["total_runs"] == 2
        assert data["total_items_pushed"] == 8
        assert len(data["recent_runs"]) == 1
        assert data["recent_runs"][0]["run_id"] == "run-3"

    def test_limit_is_validated(self, client):
        assert client.get("/stats", params={"limit": 0}).status_code == 422


class TestConnectionEndpoints:

    def test_list_connections(self, client):
        data = client.get("/connections").json()
        assert [c["id"] for c in data] == [CONNECTION_ID]

    def test_connection_state(self, client):
        data = client.get(f"/connections/{CONNECTION_ID}/state").json()
        assert data == {"connection_id": CONNECTION_ID, "state": "ready"}

    def test_missing_schema_is_404(self, client):
        assert client.get(f"/connections/{CONNECTION_ID}/schema").status_code == 404

    def test_register_schema_on_draft_connection(self, client, index_service):
        index_service.state_sequence = [ConnectionState.DRAFT, ConnectionState.READY]

        response = client.post(f"/connections/{CONNECTION_ID}/schema")

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["state"] == "ready"

        schema = client.get(f"/connections/{CONNECTION_ID}/schema").json()
        assert schema["baseType"] == "microsoft.graph.externalItem"
        assert schema["properties"][0]["name"] == "termName"

    def test_register_schema_on_ready_connection_is_refused(self, client, index_service):
        data = client.post(f"/connections/{CONNECTION_ID}/schema").json()

        assert data["ok"] is False
        assert index_service.patch_calls == []

    def test_delete_all_items(self, client, index_service):
        index_service.items[CONNECTION_ID] = {f"item-{i}": {} for i in range(4)}

        data = client.delete(f"/connections/{CONNECTION_ID}/items").json()

        assert data == {"connection_id": CONNECTION_ID, "succeeded": 4, "failed": 0}
        assert index_service.items[CONNECTION_ID] == {}

    def test_delete_all_items_enumeration_failure_is_502(self, client, index_service):
        index_service.items[CONNECTION_ID] = {f"item-{i}": {} for i in range(4)}
        index_service.fail_on_page = 1

        response = client.delete(f"/connections/{CONNECTION_ID}/items")

        assert response.status_code == 502
        assert len(index_service.items[CONNECTION_ID]) == 4


    def test_create_connection(self, client, index_service):
        response = client.post(
            "/connections",
            json={"id": "newglossary", "name": "Glossary", "description": "Terms"}
        )

        assert response.status_code == 201
        assert response.json()["ok"] is True
        assert response.json()["state"] == "draft"
        assert index_service.connections["newglossary"].name == "Glossary"

    def test_create_connection_rejects_invalid_id(self, client):
        assert client.post("/connections", json={"id": "no-dashes", "name": "G"}).status_code == 422

    def test_create_connection_failure_is_502(self, client, index_service, monkeypatch):
        async def rejected(connection):
            raise IndexRequestError("Conflict", status_code=409)

        monkeypatch.setattr(index_service, "create_connection", rejected)

        response = client.post("/connections", json={"id": "newglossary", "name": "Glossary"})

        assert response.status_code == 502

    def test_delete_connection(self, client, index_service):
        response = client.delete(f"/connections/{CONNECTION_ID}")

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert CONNECTION_ID not in index_service.connections

    def test_delete_missing_connection_is_ok(self, client):
        response = client.delete("/connections/ghost")

        assert response.status_code == 200
        assert response.json()["message"] == "Connection not found"


class TestRequestContext:

    def test_request_id_header(self, client):
        response = client.get("/stats")

        assert response.headers["X-Request-ID"].startswith("req_")
        assert "X-API-Latency-ms" in response.headers
        assert response.json()["request_id"] == response.headers["X-Request-ID"]

    def test_connector_error_renders_error_response(self, client, runner):
        class BrokenHistory(StubHistory):
            async def aggregate(self):
                raise PersistenceError("History table unavailable", context={"table": "sync_runs"})

        runner.run_history = BrokenHistory([])

        response = client.get("/stats")

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "PersistenceError"
        assert data["detail"] == "History table unavailable"
        assert data["context"]["table"] == "sync_runs"
