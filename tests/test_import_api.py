"""
API tests for the market data import endpoints.
Uses FastAPI TestClient with the import service wired to in-memory doubles.
"""
from unittest.mock import Mock
import pytest
from fastapi.testclient import TestClient
from src.core import config
from src.core.auth_dependencies import verify_token
from src.core.dependencies import get_import_service, get_job_tracker
from src.main import app
from src.services.import_service import MarketImportService
from src.services.job_tracker import JobTracker
from tests.support import DeferredTaskExecutor, InlineTaskExecutor, build_csv, make_request

FORM = {
    "data_type": "property_prices",
    "source": "land_registry",
    "start_date": "2024-01-01",
    "end_date": "2024-12-31"
}


def _install(service):
    app.dependency_overrides[get_import_service] = lambda: service
    app.dependency_overrides[verify_token] = lambda: "admin-1"


@pytest.fixture
def service(market_repo, history_repo):
    service = MarketImportService(
        job_tracker=JobTracker(),
        market_data_repository=market_repo,
        history_repository=history_repo,
        task_executor=InlineTaskExecutor()
    )
    _install(service)
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def deferred(market_repo, history_repo):
    executor = DeferredTaskExecutor()
    service = MarketImportService(
        job_tracker=JobTracker(),
        market_data_repository=market_repo,
        history_repository=history_repo,
        task_executor=executor
    )
    _install(service)
    yield executor
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def _upload(content, filename="prices.csv"):
    return {"file": (filename, content, "text/csv")}


class TestSubmitImportAPI:
    def test_submit_and_poll_progress(self, client, service, history_repo):
        response = client.post("/v1/api/imports", files=_upload(build_csv(3)), data=FORM)

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        assert body["job_id"].startswith("import_")

        progress = client.get(f"/v1/api/imports/{body['job_id']}/progress")
        assert progress.status_code == 200
        assert progress.json()["status"] == "completed"
        assert progress.json()["processed_records"] == 3
        assert history_repo.save.call_args.args[0].imported_by == "admin-1"

    def test_form_fields_reach_job(self, client, service, market_repo):
        data = dict(FORM, region="North East", overwrite_existing="true")
        csv = build_csv(1, overrides={1: {"location": ""}})

        response = client.post("/v1/api/imports", files=_upload(csv), data=data)

        assert response.status_code == 202
        entities, overwrite = market_repo.write_batch.call_args.args
        assert overwrite is True
        assert entities[0].location == "North East"

    def test_reversed_date_range(self, client, service):
        data = dict(FORM, start_date="2024-12-31", end_date="2024-01-01")

        response = client.post("/v1/api/imports", files=_upload(build_csv(1)), data=data)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation Error"
        assert "start_date must not be after end_date" in response.json()["message"]

    def test_blank_source(self, client, service):
        response = client.post("/v1/api/imports", files=_upload(build_csv(1)), data=dict(FORM, source="   "))

        assert response.status_code == 400
        assert "Field cannot be empty" in response.json()["message"]

    def test_unknown_data_type(self, client, service):
        response = client.post("/v1/api/imports", files=_upload(build_csv(1)), data=dict(FORM, data_type="weather"))

        assert response.status_code == 422

    def test_missing_file(self, client, service):
        response = client.post("/v1/api/imports", data=FORM)

        assert response.status_code == 422

    def test_non_csv_file(self, client, service):
        response = client.post("/v1/api/imports", files=_upload(b"a,b\n1,2\n", "prices.txt"), data=FORM)

        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed"

    def test_empty_file(self, client, service):
        response = client.post("/v1/api/imports", files=_upload(b""), data=FORM)

        assert response.status_code == 400
        assert response.json()["message"] == "Uploaded file is empty"

    def test_file_too_large(self, client, service, monkeypatch):
        monkeypatch.setattr(config.settings, "max_file_size_mb", 1)

        response = client.post("/v1/api/imports", files=_upload(b"a" * (1024 * 1024 + 1)), data=FORM)

        assert response.status_code == 413
        assert "exceeds maximum allowed size of 1MB" in response.json()["detail"]

    def test_corrupt_file_accepted_then_failed(self, client, service):
        response = client.post("/v1/api/imports", files=_upload(b"\xff\xfe\xfa"), data=FORM)

        assert response.status_code == 202
        progress = client.get(f"/v1/api/imports/{response.json()['job_id']}/progress").json()
        assert progress["status"] == "failed"
        assert progress["processed_records"] == 0


class TestProgressAndCancelAPI:
    def test_progress_unknown_job(self, client, service):
        response = client.get("/v1/api/imports/import_missing/progress")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_cancel_unknown_job(self, client, service):
        response = client.delete("/v1/api/imports/import_missing")

        assert response.status_code == 404

    def test_cancel_completed_job(self, client, service):
        job_id = client.post("/v1/api/imports", files=_upload(build_csv(2)), data=FORM).json()["job_id"]

        response = client.delete(f"/v1/api/imports/{job_id}")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid Import State"
        assert client.get(f"/v1/api/imports/{job_id}/progress").json()["status"] == "completed"

    def test_cancel_pending_job(self, client, deferred):
        job_id = client.post("/v1/api/imports", files=_upload(build_csv(2)), data=FORM).json()["job_id"]

        response = client.delete(f"/v1/api/imports/{job_id}")

        assert response.status_code == 200
        assert response.json()["success"] is True
        deferred.run_all()
        assert client.get(f"/v1/api/imports/{job_id}/progress").json()["status"] == "cancelled"


class TestHistoryAndValidateAPI:
    def test_history_defaults(self, client, service, history_repo):
        history_repo.find_page.return_value = ([], 0)

        response = client.get("/v1/api/imports/history")

        assert response.status_code == 200
        assert response.json() == {"data": [], "total": 0, "page": 1, "limit": 20}
        history_repo.find_page.assert_called_once_with(1, 20)

    def test_history_limit_is_capped(self, client, service, history_repo):
        history_repo.find_page.return_value = ([], 0)

        response = client.get("/v1/api/imports/history?page=3&limit=500")

        assert response.status_code == 200
        history_repo.find_page.assert_called_once_with(3, 100)

    def test_history_rejects_bad_page(self, client, service):
        response = client.get("/v1/api/imports/history?page=0")

        assert response.status_code == 422

    def test_validate_csv(self, client, service, market_repo):
        response = client.post("/v1/api/imports/validate", files=_upload(build_csv(3)))

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert len(body["preview"]) == 3
        market_repo.write_batch.assert_not_called()

    def test_validate_csv_reports_problems(self, client, service):
        response = client.post("/v1/api/imports/validate", files=_upload(b"location\nLeeds\n"))

        body = response.json()
        assert body["valid"] is False
        assert "Missing required field: averagePrice" in body["errors"]
        assert "Missing required field: recordDate" in body["errors"]


class TestAuthAndHealthAPI:
    def test_health(self, client):
        response = client.get("/v1/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "Market Data Import API"

    def test_health_counts_tracked_jobs(self, client, deferred):
        tracker = JobTracker()
        app.dependency_overrides[get_job_tracker] = lambda: tracker
        service = MarketImportService(tracker, Mock(), Mock(), task_executor=deferred)
        service.submit_import(make_request(build_csv(1)))

        response = client.get("/v1/api/health")

        assert response.json()["tracked_jobs"] == 1
        assert response.json()["environment"] == config.settings.environment

    def test_requires_token(self, client, service):
        app.dependency_overrides.pop(verify_token)

        response = client.get("/v1/api/imports/history")

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"

    def test_token_subject_is_submitter(self, client, service, history_repo, auth_headers):
        app.dependency_overrides.pop(verify_token)

        response = client.post("/v1/api/imports", files=_upload(build_csv(1)), data=FORM, headers=auth_headers)

        assert response.status_code == 202
        assert history_repo.save.call_args.args[0].imported_by == "test_user"
