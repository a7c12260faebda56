"""Tests for the FastAPI trigger endpoints - mocked GitHub API, temporary catalog."""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from gasingest.api import app, get_client, get_settings
from gasingest.core.client import GitHubClient
from gasingest.models.library import LibraryStatus
from gasingest.models.summary import SummaryRecord

from tests.conftest import commits_payload, make_library, readme_payload, recent_iso, repo_payload


SCRIPT_ID = "1" + "K" * 40


def github_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/search/repositories":
        if request.url.params.get("page") != "1":
            return httpx.Response(200, json={"total_count": 2, "items": []})
        return httpx.Response(200, json={
            "total_count": 2, "items": [repo_payload("lib"), repo_payload("node")],
        })
    if path.endswith("/readme"):
        if "/node/" in path:
            return httpx.Response(200, json=readme_payload("# node\n\nnpm install node-thing\n"))
        return httpx.Response(200, json=readme_payload(f"# lib\n\nScript ID: {SCRIPT_ID}\n"))
    if path.endswith("/commits"):
        return httpx.Response(200, json=commits_payload(recent_iso()))
    name = path.rsplit("/", 1)[-1]
    return httpx.Response(200, json=repo_payload(name, stars=42))


@pytest.fixture
def api(settings, tmp_path, monkeypatch):
    """TestClient with the catalog on tmp_path and GitHub mocked."""
    monkeypatch.setenv("GASINGEST_CATALOG_PATH", str(tmp_path / "catalog.db"))

    async def mocked_client():
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(github_handler), base_url="https://api.github.com"
        )
        async with GitHubClient(settings, http_client=http) as client:
            yield client
        await http.aclose()

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_client] = mocked_client
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


class TestSystem:
    """Health and config."""

    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_config_hides_token(self, api, settings):
        response = api.get("/api/config")
        body = response.json()
        assert response.status_code == 200
        assert body["authenticated"] is True
        assert body["tags"] == settings.tags
        assert "test-token" not in response.text


class TestBulkRegister:
    """Scheduled ingestion trigger."""

    def test_missing_tag(self, api):
        assert api.post("/api/cron/bulk-register", json={}).status_code == 422

    def test_blank_tag(self, api):
        response = api.post("/api/cron/bulk-register", json={"tag": "   "})
        assert response.status_code == 400
        assert "No valid tags" in response.json()["detail"]

    def test_max_pages_bounded(self, api):
        response = api.post("/api/cron/bulk-register", json={"tag": "gas", "max_pages": 11})
        assert response.status_code == 422

    def test_ingests_into_catalog(self, api):
        response = api.post(
            "/api/cron/bulk-register", json={"tag": "google-apps-script", "max_pages": 2}
        )
        body = response.json()

        assert response.status_code == 200
        assert body["tag"] == "google-apps-script"
        assert body["total"] == 2
        assert body["success_count"] == 1
        assert body["error_count"] == 1
        assert body["success"] is True
        assert "Script ID not found" in body["errors"][0]

        entry = api.portal.call(
            app.state.catalog.find_by_repository_url, "https://github.com/octo/lib"
        )
        assert entry.script_id == SCRIPT_ID
        assert entry.star_count == 42

    def test_second_run_counts_duplicates(self, api):
        api.post("/api/cron/bulk-register", json={"tag": "google-apps-script"})
        body = api.post("/api/cron/bulk-register", json={"tag": "google-apps-script"}).json()
        assert body["duplicate_count"] == 1
        assert body["success_count"] == 0


class TestBulkUpdate:
    """Scheduled refresh trigger."""

    def test_refreshes_entries(self, api):
        catalog = app.state.catalog
        api.portal.call(catalog.save, make_library("lib", script_id=SCRIPT_ID, star_count=1))

        response = api.post("/api/cron/bulk-update-existing", json={"delay_ms": 0})
        body = response.json()

        assert response.status_code == 200
        assert body["total"] == 1
        assert body["success_count"] == 1
        entry = api.portal.call(catalog.find_by_repository_url, "https://github.com/octo/lib")
        assert entry.star_count == 42

    def test_rejected_skipped(self, api):
        catalog = app.state.catalog
        saved = api.portal.call(catalog.save, make_library("lib", script_id=SCRIPT_ID))
        api.portal.call(catalog.set_status, saved.id, LibraryStatus.REJECTED)

        body = api.post("/api/cron/bulk-update-existing", json={"delay_ms": 0}).json()

        assert body["total"] == 0
        assert body["success"] is True

    def test_batch_size_bounded(self, api):
        response = api.post("/api/cron/bulk-update-existing", json={"batch_size": 0})
        assert response.status_code == 422


class TestSummaryDefault:
    """generate_summary falls back to GASINGEST_GENERATE_SUMMARY."""

    def register(self, api, service, **body):
        app.state.summary_service = service
        try:
            return api.post(
                "/api/cron/bulk-register", json={"tag": "google-apps-script", **body}
            ).json()
        finally:
            del app.state.summary_service

    def test_setting_enables_summary(self, api):
        service = AsyncMock(return_value=SummaryRecord(library_name="lib"))

        body = self.register(api, service)

        assert body["success_count"] == 1
        service.assert_awaited_once()
        entry = api.portal.call(
            app.state.catalog.find_by_repository_url, "https://github.com/octo/lib"
        )
        assert api.portal.call(app.state.catalog.summary_exists, entry.id) is True

    def test_request_overrides_setting(self, api):
        service = AsyncMock(return_value=SummaryRecord(library_name="lib"))

        body = self.register(api, service, generate_summary=False)

        assert body["success_count"] == 1
        service.assert_not_awaited()

    def test_setting_disabled(self, api, settings):
        app.dependency_overrides[get_settings] = lambda: settings.model_copy(
            update={"generate_summary": False}
        )
        service = AsyncMock(return_value=SummaryRecord(library_name="lib"))

        self.register(api, service)

        service.assert_not_awaited()
