"""Tests for the operations API.

This test suite covers:
- Root and health endpoints
- CSV import (multipart upload) and its error envelope
- Smart update with a scripted language model
- Catalog, snapshot, stats and user directory endpoints
- Middleware (X-Process-Time header)
"""

import json
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from src.dashboard.api.dependencies import get_language_model, get_storage_adapter
from src.dashboard.api.main import app
from src.domain.entity_kinds import EntityKind
from src.domain.ports import LanguageModelError, Result, StoragePort

GUIDELINES_CSV = "Title,Content,Category\nCurfew,Doors lock at 10pm,Night\nVisitors,9 to 5,\n"


@pytest.fixture
def model(scripted_model):
    return scripted_model(reply='{"action": "add", "records": []}')


@pytest.fixture
def client(storage, model):
    """Test client over a real in-memory store and a scripted model."""
    app.dependency_overrides[get_storage_adapter] = lambda: storage
    app.dependency_overrides[get_language_model] = lambda: model
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def _upload(client, table, content, clear_existing=None, filename="upload.csv"):
    data = {"table": table}
    if clear_existing is not None:
        data["clearExisting"] = clear_existing
    return client.post(
        "/api/csv-import",
        files={"file": (filename, content, "text/csv")},
        data=data,
    )


class TestRootAndHealth:
    """Service info endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["version"] == "1.0.0"
        assert data["docs"] == "/api/docs"
        assert data["health"] == "/api/health"

    def test_health_reports_database(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["database"]["status"] == "connected"
        assert data["database"]["type"] == "duckdb"
        assert data["status"] in ("healthy", "degraded")

    def test_health_unhealthy_when_database_down(self):
        broken = Mock(spec=StoragePort)
        broken.query.return_value = Result.failure_result("connection refused")
        broken.initialize_schema.return_value = Result.failure_result("connection refused")
        app.dependency_overrides[get_storage_adapter] = lambda: broken
        try:
            with TestClient(app) as test_client:
                data = test_client.get("/api/health").json()
        finally:
            app.dependency_overrides.clear()
        assert data["status"] == "unhealthy"
        assert data["database"]["status"] == "disconnected"

    def test_process_time_header(self, client):
        response = client.get("/")
        assert "X-Process-Time" in response.headers


class TestCsvImport:
    """POST /api/csv-import."""

    def test_successful_import(self, client, storage):
        response = _upload(client, "guidelines", GUIDELINES_CSV)
        assert response.status_code == 200
        assert response.json() == {"success": True, "imported": 2, "total": 2}
        assert storage.count(EntityKind.GUIDELINE.table_name).value == 2

    def test_clear_existing_flag(self, client, storage):
        _upload(client, "guidelines", GUIDELINES_CSV)
        response = _upload(client, "guidelines", GUIDELINES_CSV, clear_existing="true")
        assert response.status_code == 200
        assert storage.count(EntityKind.GUIDELINE.table_name).value == 2

    @pytest.mark.parametrize("flag", ["1", "yes", "y", "on", ""])
    def test_clear_existing_requires_literal_true(self, client, storage, flag):
        _upload(client, "guidelines", GUIDELINES_CSV)
        response = _upload(client, "guidelines", GUIDELINES_CSV, clear_existing=flag)
        assert response.status_code == 200
        assert storage.count(EntityKind.GUIDELINE.table_name).value == 4

    def test_clear_existing_is_case_insensitive(self, client, storage):
        _upload(client, "guidelines", GUIDELINES_CSV)
        _upload(client, "guidelines", GUIDELINES_CSV, clear_existing="TRUE")
        assert storage.count(EntityKind.GUIDELINE.table_name).value == 2

    def test_bom_prefixed_upload(self, client):
        response = _upload(client, "guidelines", "\ufeff" + GUIDELINES_CSV)
        assert response.json()["imported"] == 2

    def test_missing_table(self, client):
        response = client.post("/api/csv-import", files={"file": ("a.csv", GUIDELINES_CSV, "text/csv")})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing file or table"}

    def test_missing_file(self, client):
        response = client.post("/api/csv-import", data={"table": "guidelines"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing file or table"

    def test_unknown_table(self, client):
        response = _upload(client, "residents", GUIDELINES_CSV)
        assert response.status_code == 400
        assert "Unknown table" in response.json()["error"]

    def test_empty_file(self, client):
        response = _upload(client, "guidelines", "Title,Content,Category\n")
        assert response.status_code == 400
        assert response.json() == {"error": "No data rows found in CSV"}

    def test_header_mismatch_detail(self, client, storage):
        response = _upload(client, "staff", GUIDELINES_CSV)
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Column mismatch: your CSV doesn't match the target table"
        assert data["received"] == ["Title", "Content", "Category"]
        assert "Name" in data["missing"]
        assert data["unexpected"] == ["Content", "Category"]
        assert data["expected"][0] == "Name"
        assert storage.count(EntityKind.STAFF_MEMBER.table_name).value == 0

    def test_non_utf8_upload(self, client):
        response = _upload(client, "guidelines", b"Title,Content\n\xff\xfe,bad\n")
        assert response.status_code == 400

    def test_oversized_upload(self, client, monkeypatch):
        from src.infrastructure.settings import settings
        monkeypatch.setattr(settings, "max_upload_bytes", 10)
        response = _upload(client, "guidelines", GUIDELINES_CSV)
        assert response.status_code == 413

    def test_upload_at_limit_accepted(self, client, monkeypatch):
        from src.infrastructure.settings import settings
        monkeypatch.setattr(settings, "max_upload_bytes", len(GUIDELINES_CSV.encode("utf-8")))
        response = _upload(client, "guidelines", GUIDELINES_CSV)
        assert response.status_code == 200

    def test_one_byte_over_limit_rejected(self, client, storage, monkeypatch):
        from src.infrastructure.settings import settings
        monkeypatch.setattr(settings, "max_upload_bytes", len(GUIDELINES_CSV.encode("utf-8")) - 1)
        response = _upload(client, "guidelines", GUIDELINES_CSV)
        assert response.status_code == 413
        assert storage.count(EntityKind.GUIDELINE.table_name).value == 0

    def test_storage_failure_is_500(self, client):
        failing = Mock(spec=StoragePort)
        failing.insert.return_value = Result.failure_result("disk full")
        app.dependency_overrides[get_storage_adapter] = lambda: failing
        response = _upload(client, "guidelines", GUIDELINES_CSV)
        assert response.status_code == 500
        assert response.json()["imported"] == 0


class TestSmartUpdate:
    """POST /api/smart-update."""

    def test_applies_diff(self, client, storage, model):
        model.reply = json.dumps({"action": "add", "records": [{"title": "Quiet hours", "content": "After 10pm"}]})

        response = client.post("/api/smart-update", json={"actionId": "mainmenu-guidelines", "prompt": "add quiet hours"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "action": "add", "count": 1, "summary": "Added 1 new guidelines"}
        assert model.calls[0][1] == "add quiet hours"
        assert storage.count(EntityKind.GUIDELINE.table_name).value == 1

    def test_kind_key_accepted(self, client):
        response = client.post("/api/smart-update", json={"kind": "meals", "prompt": "nothing"})
        assert response.status_code == 200
        assert response.json()["summary"] == "Added 0 new meals"

    def test_missing_prompt(self, client):
        response = client.post("/api/smart-update", json={"actionId": "mainmenu-meals"})
        assert response.status_code == 400
        assert response.json() == {"error": "actionId and prompt are required"}

    def test_unsupported_kind(self, client, model):
        response = client.post("/api/smart-update", json={"actionId": "mainmenu-medication", "prompt": "x"})
        assert response.status_code == 400
        assert "Use raw override instead" in response.json()["error"]
        assert model.calls == []

    def test_malformed_model_reply(self, client, model):
        model.reply = "I cannot do that"
        response = client.post("/api/smart-update", json={"actionId": "mainmenu-meals", "prompt": "x"})
        assert response.status_code == 500
        assert response.json() == {"error": "AI returned invalid JSON", "raw": "I cannot do that"}

    def test_unknown_model_action_is_not_an_error(self, client, storage, model):
        storage.insert(EntityKind.MEAL.table_name, {"meal_type": "Dinner"})
        model.reply = '{"action": "merge", "records": [{"mealType": "Lunch"}]}'

        response = client.post("/api/smart-update", json={"actionId": "mainmenu-meals", "prompt": "merge them"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "action": "merge", "count": 0, "summary": "No changes made"}
        assert storage.count(EntityKind.MEAL.table_name).value == 1

    def test_model_not_configured(self, client, model):
        model.error = LanguageModelError("OPENAI_API_KEY not configured")
        response = client.post("/api/smart-update", json={"actionId": "mainmenu-meals", "prompt": "x"})
        assert response.status_code == 500
        assert response.json() == {"error": "OPENAI_API_KEY not configured"}


class TestCatalog:
    """Read-side endpoints."""

    def test_import_tables(self, client):
        tables = client.get("/api/import-tables").json()["tables"]
        by_key = {table["key"]: table for table in tables}
        assert len(tables) == len(EntityKind)
        assert by_key["meals"]["defaultFile"] == "meal-menu.csv"
        assert by_key["meals"]["smartUpdate"] is True
        assert by_key["guidelines"]["defaultFile"] is None
        assert by_key["staff"]["expectedHeaders"][0] == "Name"

    def test_records_snapshot(self, client):
        _upload(client, "guidelines", GUIDELINES_CSV)
        data = client.get("/api/records/guidelines").json()
        assert data["table"] == "guidelines"
        assert data["count"] == 2
        assert {record["title"] for record in data["records"]} == {"Curfew", "Visitors"}

    def test_records_unknown_table(self, client):
        assert client.get("/api/records/residents").status_code == 404

    def test_stats(self, client, add_user):
        _upload(client, "guidelines", GUIDELINES_CSV)
        add_user("Ann Park")
        data = client.get("/api/stats").json()
        assert data["guidelines"] == 2
        assert data["users"] == 1
        assert data["scheduleBlocks"] == 0
        assert data["houseRules"] == 0
        assert data["emergencyContacts"] == 0

    def test_stats_failure(self, client):
        failing = Mock(spec=StoragePort)
        failing.count.return_value = Result.failure_result("connection lost")
        app.dependency_overrides[get_storage_adapter] = lambda: failing
        response = client.get("/api/stats")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch stats"}

    def test_users_directory(self, client):
        created = client.post("/api/users", json={"name": "  Ann Park "})
        assert created.status_code == 201
        assert created.json()["name"] == "Ann Park"

        users = client.get("/api/users").json()["users"]
        assert [user["name"] for user in users] == ["Ann Park"]

    def test_blank_user_rejected(self, client):
        response = client.post("/api/users", json={"name": "   "})
        assert response.status_code == 400
