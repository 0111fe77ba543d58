"""FastAPI application for multi-currency invoice tracking.

Production-ready API with:
- Health and readiness checks for Kubernetes
- CSV upload validation
- FX conversion of invoice sheets with historical rates
- CSV report export
- Background batch processing through arq
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import time
import uuid
from datetime import UTC, date, datetime
from typing import Any

from arq import create_pool
from arq.connections import ArqRedis
from fastapi import FastAPI, File, HTTPException, Query, Request, Response, UploadFile, status
from pydantic import BaseModel

from services.api import metrics
from services.fx.factory import create_pipeline
from services.ingest.csv_parser import SAMPLE_CSV, CSVValidationError, parse_invoice_csv
from services.invoices.schema import Invoice, InvoiceStatus
from services.queue.tasks import JobResult, WorkerSettings, job_key
from services.reporting.export import export_invoices_csv, filter_invoices, report_filename
from services.reporting.summary import ReportSummary, build_report_summary
from services.shared.config import get_settings

settings = get_settings()
app = FastAPI(
    title="FX Invoice Tracker",
    description="Multi-currency invoice management with historical FX conversion",
    version=settings.service_version,
)

# One pipeline per process: its rate cache is shared by every request
pipeline = create_pipeline(settings)

_arq_pool: ArqRedis | None = None


async def get_arq_pool() -> ArqRedis:
    """Get (and lazily create) the arq Redis pool."""
    global _arq_pool
    if _arq_pool is None:
        _arq_pool = await create_pool(WorkerSettings.get_redis_settings())
    return _arq_pool


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class ProcessResponse(BaseModel):
    """Invoice processing response."""

    success: bool
    invoice_count: int
    invoices: list[Invoice]
    summary: ReportSummary


class JobSubmitResponse(BaseModel):
    """Background job submission response."""

    job_id: str
    status: str
    row_count: int


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe."""
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe."""
    return ReadinessResponse(ready=True)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint."""
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


def _reject(detail: str) -> HTTPException:
    metrics.invoice_uploads_total.labels(status="rejected").inc()
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def _read_invoice_upload(file: UploadFile) -> list[dict[str, str]]:
    """Validate an uploaded invoice sheet and parse its rows.

    Raises:
        HTTPException: 400 if the file is missing, not CSV, empty, too large,
            or lacks required columns
    """
    if not file.filename:
        raise _reject("No filename provided")

    if not file.filename.lower().endswith(".csv"):
        raise _reject("Please select a CSV file")

    content = await file.read()
    if not content:
        raise _reject("Empty file")

    if len(content) > settings.max_upload_bytes:
        raise _reject(f"File too large: {len(content)} bytes (limit {settings.max_upload_bytes})")

    metrics.invoice_upload_size_bytes.observe(len(content))

    try:
        rows = parse_invoice_csv(content)
    except CSVValidationError as e:
        raise _reject(str(e)) from e

    metrics.invoice_uploads_total.labels(status="success").inc()
    return rows


async def _convert(rows: list[dict[str, str]], as_of: date | None) -> list[Invoice]:
    start_time = time.time()
    invoices = await pipeline.process(rows, today=as_of)
    metrics.conversion_batch_duration_seconds.observe(time.time() - start_time)
    metrics.invoices_processed_total.inc(len(invoices))
    return invoices


@app.get("/api/v1/invoices/sample", tags=["Invoices"])
def download_sample() -> Response:
    """Download a sample invoice sheet with the expected columns."""
    return Response(
        content=SAMPLE_CSV,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="sample_invoices.csv"'},
    )


@app.post("/api/v1/invoices/process", response_model=ProcessResponse, tags=["Invoices"])
async def process_invoices(
    file: UploadFile = File(..., description="Invoice CSV file"),  # noqa: B008
    as_of: date | None = Query(
        None, description="Reference date for status and aging (defaults to today)"
    ),
) -> ProcessResponse:
    """Convert an invoice sheet to USD with historical FX rates.

    Required columns: Client, Invoice_Amount, Currency, Invoice_Date, Due_Date.
    Optional columns: Payment_Date, Payment_Amount.

    ## Usage Example

    ```bash
    curl -X POST "http://localhost:8000/api/v1/invoices/process" \\
      -F "file=@invoices.csv"
    ```

    ## Error Handling

    - Returns 400 if the file is invalid, empty, not CSV, or missing columns
    - Rate source outages never fail the request: affected invoices are
      converted at a rate of 1 and flagged with `fx_rate_estimated`
    """
    rows = await _read_invoice_upload(file)
    invoices = await _convert(rows, as_of)

    return ProcessResponse(
        success=True,
        invoice_count=len(invoices),
        invoices=invoices,
        summary=build_report_summary(invoices),
    )


@app.post("/api/v1/invoices/export", tags=["Invoices"])
async def export_report(
    file: UploadFile = File(..., description="Invoice CSV file"),  # noqa: B008
    search: str | None = Query(None, description="Client name contains (case-insensitive)"),
    invoice_status: InvoiceStatus | None = Query(None, alias="status"),
    currency: str | None = Query(None, description="Currency code"),
    as_of: date | None = Query(None, description="Reference date for status and aging"),
) -> Response:
    """Convert an invoice sheet and download the FX report as CSV."""
    rows = await _read_invoice_upload(file)
    invoices = await _convert(rows, as_of)
    selected = filter_invoices(invoices, search=search, status=invoice_status, currency=currency)

    return Response(
        content=export_invoices_csv(selected),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(as_of)}"'},
    )


@app.post(
    "/api/v1/invoices/process/async", response_model=JobSubmitResponse, tags=["Invoices"]
)
async def submit_invoice_batch(
    file: UploadFile = File(..., description="Invoice CSV file"),  # noqa: B008
    as_of: date | None = Query(None, description="Reference date for status and aging"),
) -> JobSubmitResponse:
    """Queue an invoice sheet for background conversion.

    Poll `/api/v1/jobs/{job_id}` for the result.

    Raises:
        HTTPException: 503 if the queue is disabled, 400 for invalid files
    """
    if not settings.queue_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Background processing is not enabled",
        )

    rows = await _read_invoice_upload(file)
    job_id = str(uuid.uuid4())
    pool = await get_arq_pool()

    pending = JobResult(
        job_id=job_id,
        status="pending",
        row_count=len(rows),
        created_at=datetime.now(UTC).isoformat(),
    )
    await pool.set(job_key(job_id), pending.model_dump_json(), ex=settings.job_result_ttl)
    await pool.enqueue_job(
        "process_invoice_batch",
        job_id,
        rows,
        as_of.isoformat() if as_of else None,
        _job_id=job_id,
    )

    return JobSubmitResponse(job_id=job_id, status="pending", row_count=len(rows))


@app.get("/api/v1/jobs/{job_id}", response_model=JobResult, tags=["Jobs"])
async def get_job(job_id: str) -> Any:
    """Get the status and result of a background job.

    Raises:
        HTTPException: 503 if the queue is disabled, 404 if the job is unknown
    """
    if not settings.queue_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Background processing is not enabled",
        )

    pool = await get_arq_pool()
    raw = await pool.get(job_key(job_id))
    if raw is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    return JobResult.model_validate_json(raw)
