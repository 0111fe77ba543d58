"""Unit tests for background batch API endpoints.

Tests job submission and status endpoints.
"""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from services.api.main import app
from services.ingest.csv_parser import SAMPLE_CSV
from services.queue.tasks import JobResult
from services.shared.config import Settings


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def mock_arq_pool() -> AsyncMock:
    """Create mock arq pool."""
    mock = AsyncMock()
    mock.set = AsyncMock()
    mock.get = AsyncMock()
    mock.enqueue_job = AsyncMock()
    return mock


@pytest.fixture
def queue_settings() -> Settings:
    """Settings with background processing enabled."""
    return Settings(queue_enabled=True, job_result_ttl=600)


class TestSubmitEndpoint:
    """Test background submission endpoint."""

    def test_submit_requires_queue_enabled(self, client: TestClient) -> None:
        """Should return 503 when queue is disabled."""
        with patch("services.api.main.settings", Settings(queue_enabled=False)):
            response = client.post(
                "/api/v1/invoices/process/async",
                files={"file": ("invoices.csv", SAMPLE_CSV.encode(), "text/csv")},
            )

        assert response.status_code == 503
        assert "not enabled" in response.json()["detail"]

    def test_submit_success(
        self, client: TestClient, mock_arq_pool: AsyncMock, queue_settings: Settings
    ) -> None:
        """Should store a pending result and enqueue the parsed rows."""
        with (
            patch("services.api.main.settings", queue_settings),
            patch("services.api.main.get_arq_pool", return_value=mock_arq_pool),
        ):
            response = client.post(
                "/api/v1/invoices/process/async",
                files={"file": ("invoices.csv", SAMPLE_CSV.encode(), "text/csv")},
                params={"as_of": "2024-03-10"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["row_count"] == 5
        job_id = data["job_id"]

        key, payload = mock_arq_pool.set.call_args.args
        assert key == f"job:{job_id}"
        assert json.loads(payload)["status"] == "pending"
        assert mock_arq_pool.set.call_args.kwargs["ex"] == 600

        args = mock_arq_pool.enqueue_job.call_args.args
        assert args[0] == "process_invoice_batch"
        assert args[1] == job_id
        assert len(args[2]) == 5
        assert args[2][0]["Client"] == "Acme Corp"
        assert args[3] == "2024-03-10"
        assert mock_arq_pool.enqueue_job.call_args.kwargs["_job_id"] == job_id

    def test_submit_without_as_of(
        self, client: TestClient, mock_arq_pool: AsyncMock, queue_settings: Settings
    ) -> None:
        """Should leave the reference date to the worker."""
        with (
            patch("services.api.main.settings", queue_settings),
            patch("services.api.main.get_arq_pool", return_value=mock_arq_pool),
        ):
            client.post(
                "/api/v1/invoices/process/async",
                files={"file": ("invoices.csv", SAMPLE_CSV.encode(), "text/csv")},
            )

        assert mock_arq_pool.enqueue_job.call_args.args[3] is None

    def test_submit_invalid_file(
        self, client: TestClient, mock_arq_pool: AsyncMock, queue_settings: Settings
    ) -> None:
        """Should reject invalid sheets before queueing."""
        with (
            patch("services.api.main.settings", queue_settings),
            patch("services.api.main.get_arq_pool", return_value=mock_arq_pool),
        ):
            response = client.post(
                "/api/v1/invoices/process/async",
                files={"file": ("invoices.csv", b"Client\nAcme\n", "text/csv")},
            )

        assert response.status_code == 400
        mock_arq_pool.enqueue_job.assert_not_called()


class TestJobStatusEndpoint:
    """Test job status endpoint."""

    def test_status_requires_queue_enabled(self, client: TestClient) -> None:
        """Should return 503 when queue is disabled."""
        with patch("services.api.main.settings", Settings(queue_enabled=False)):
            response = client.get("/api/v1/jobs/job-123")

        assert response.status_code == 503

    def test_status_not_found(
        self, client: TestClient, mock_arq_pool: AsyncMock, queue_settings: Settings
    ) -> None:
        """Should return 404 for unknown jobs."""
        mock_arq_pool.get.return_value = None

        with (
            patch("services.api.main.settings", queue_settings),
            patch("services.api.main.get_arq_pool", return_value=mock_arq_pool),
        ):
            response = client.get("/api/v1/jobs/unknown")

        assert response.status_code == 404
        assert response.json()["detail"] == "Job not found"

    def test_status_completed(
        self, client: TestClient, mock_arq_pool: AsyncMock, queue_settings: Settings
    ) -> None:
        """Should return the stored job result."""
        now = datetime.now(UTC).isoformat()
        stored = JobResult(
            job_id="job-123",
            status="completed",
            row_count=1,
            invoices=[{"client": "Acme Corp", "status": "Paid"}],
            summary={"kpis": {"overdue_count": 0}},
            created_at=now,
            completed_at=now,
        )
        mock_arq_pool.get.return_value = stored.model_dump_json().encode()

        with (
            patch("services.api.main.settings", queue_settings),
            patch("services.api.main.get_arq_pool", return_value=mock_arq_pool),
        ):
            response = client.get("/api/v1/jobs/job-123")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["invoices"][0]["client"] == "Acme Corp"
        mock_arq_pool.get.assert_called_once_with("job:job-123")
