"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from legacy_bridge.api.main import app
from legacy_bridge.api.routes.imports import get_orchestrator
from legacy_bridge.orchestrator import ImportOrchestrator

from factories import TENANT, spreadsheet_config

HEADERS = {"X-Tenant-ID": TENANT, "X-Actor-ID": "user-1"}


@pytest.fixture
def api(store):
    orchestrator = ImportOrchestrator(store=store)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_job(api, path, **settings):
    response = api.post("/api/imports/jobs", json=spreadsheet_config(path, **settings), headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    def test_health(self, api):
        response = api.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestJobs:
    def test_create_job(self, api, client_file):
        job = create_job(api, client_file)

        assert job["status"] == "pending"
        assert job["tenant_id"] == TENANT
        assert job["created_by"] == "user-1"
        assert job["source_system"] == "spreadsheet"
        assert job["batch_size"] == 100

    def test_tenant_header_required(self, api, client_file):
        response = api.post("/api/imports/jobs", json=spreadsheet_config(client_file))
        assert response.status_code == 422

    def test_invalid_source_config(self, api):
        response = api.post(
            "/api/imports/jobs",
            json={
                "name": "Online",
                "system_type": "online_bookkeeping",
                "system_config": {"connection_string": "https://books.example.com"},
            },
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert "API token" in response.json()["detail"]

    def test_get_job_of_other_tenant(self, api, client_file):
        job = create_job(api, client_file)

        response = api.get(f"/api/imports/jobs/{job['id']}", headers={"X-Tenant-ID": "someone-else"})

        assert response.status_code == 404

    def test_list_jobs(self, api, client_file):
        create_job(api, client_file)
        create_job(api, client_file)

        response = api.get("/api/imports/jobs", params={"page_size": 1}, headers=HEADERS)

        body = response.json()
        assert len(body["jobs"]) == 1
        assert body["pagination"] == {"page": 1, "page_size": 1, "total": 2, "total_pages": 2}

        response = api.get("/api/imports/jobs", params={"status": "completed"}, headers=HEADERS)
        assert response.json()["pagination"]["total"] == 0


class TestExecution:
    def test_execute_runs_job(self, api, client_file):
        job = create_job(api, client_file)

        response = api.post(f"/api/imports/jobs/{job['id']}/execute", headers=HEADERS)

        assert response.status_code == 202
        assert response.json() == {"status": "started", "job_id": job["id"]}

        job = api.get(f"/api/imports/jobs/{job['id']}", headers=HEADERS).json()
        assert job["status"] == "completed"
        assert job["successful_records"] == 2

    def test_execute_twice_conflicts(self, api, client_file):
        job = create_job(api, client_file)
        api.post(f"/api/imports/jobs/{job['id']}/execute", headers=HEADERS)

        response = api.post(f"/api/imports/jobs/{job['id']}/execute", headers=HEADERS)

        assert response.status_code == 409

    def test_progress_and_records(self, api, client_file):
        job = create_job(api, client_file)
        api.post(f"/api/imports/jobs/{job['id']}/execute", headers=HEADERS)

        progress = api.get(f"/api/imports/jobs/{job['id']}/progress", headers=HEADERS).json()
        assert progress["record_stats"] == {"processed": 2, "skipped": 1}
        assert progress["progress_percentage"] == 100

        response = api.get(
            f"/api/imports/jobs/{job['id']}/records",
            params={"status": "skipped"},
            headers=HEADERS,
        )
        body = response.json()
        assert body["total"] == 1
        assert body["records"][0]["quality_score"] == 0.9
        assert body["records"][0]["source_data"]["Client Name"] == "carol white"

    def test_failed_job_is_reported(self, api, tmp_path):
        job = create_job(api, tmp_path / "missing.csv")

        api.post(f"/api/imports/jobs/{job['id']}/execute", headers=HEADERS)

        job = api.get(f"/api/imports/jobs/{job['id']}", headers=HEADERS).json()
        assert job["status"] == "failed"
        assert job["error_log"][0].startswith("extraction:")

    def test_cancel_idle_job_conflicts(self, api, client_file):
        job = create_job(api, client_file)

        response = api.post(f"/api/imports/jobs/{job['id']}/cancel", headers=HEADERS)

        assert response.status_code == 409


class TestTemplatesAndAnalysis:
    def test_templates(self, api):
        response = api.get("/api/imports/templates/desktop_bookkeeping")

        body = response.json()
        assert body["client_mappings"][0]["source_field"] == "Customer_Name"
        assert body["document_mappings"][1]["transformation"]["parameters"]["currency"] == "GYD"

    def test_unknown_system_type(self, api):
        assert api.get("/api/imports/templates/ledger_cards").status_code == 422

    def test_analyze(self, api):
        content = b"Client Name,Email Address\nAnn Lee,ann@example.com\nBo Chan,\n"

        response = api.post("/api/imports/analyze", params={"system_type": "csv"}, content=content)

        assert response.status_code == 200
        body = response.json()
        assert body["detected_fields"] == ["Client Name", "Email Address"]
        assert body["quality_report"]["completeness"]["Email Address"] == 0.5
        assert [m["target_field"] for m in body["suggested_mappings"]] == ["name", "email"]

    def test_analyze_empty_file(self, api):
        response = api.post("/api/imports/analyze", params={"system_type": "csv"}, content=b"Name,Email\n")

        assert response.status_code == 400
        assert response.json()["detail"] == "No data found in the provided file"

    def test_analyze_requires_body(self, api):
        response = api.post("/api/imports/analyze", params={"system_type": "csv"})
        assert response.status_code == 400
