"""Async task definitions for invoice batch processing.

Uses arq (async Redis queue) for background task processing. Large sheets
with many distinct currencies and dates can take a while to convert when
the rate source is slow, so they can be processed as background jobs.

Based on arq documentation:
https://arq-docs.helpmanual.io/
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from services.fx.factory import create_pipeline
from services.invoices.pipeline import FXConversionPipeline
from services.reporting.summary import build_report_summary
from services.shared.config import Settings, get_settings
from services.shared.dates import parse_iso_date

logger = logging.getLogger(__name__)


class JobResult(BaseModel):
    """Result of a background job.

    Attributes:
        job_id: Unique job identifier
        status: Job status (pending, processing, completed, failed)
        row_count: Number of rows submitted
        invoices: Processed invoices as JSON-compatible dicts (if completed)
        summary: KPI and chart aggregations (if completed)
        error: Error message (if failed)
        created_at: Job creation timestamp
        completed_at: Job completion timestamp
    """

    job_id: str
    status: str
    row_count: int = 0
    invoices: list[dict[str, Any]] | None = None
    summary: dict[str, Any] | None = None
    error: str | None = None
    created_at: str
    completed_at: str | None = None


def job_key(job_id: str) -> str:
    """Redis key holding the JobResult of ``job_id``."""
    return f"job:{job_id}"


async def _submitted_at(redis: Any, job_id: str) -> str:
    """Creation time of the pending record stored at submission, or now."""
    raw = await redis.get(job_key(job_id))
    if raw is None:
        return datetime.now(UTC).isoformat()
    return JobResult.model_validate_json(raw).created_at


async def process_invoice_batch(
    ctx: dict[str, Any],
    job_id: str,
    rows: list[dict[str, str]],
    today: str | None = None,
) -> dict[str, Any]:
    """Convert a batch of invoice rows in the background.

    Args:
        ctx: arq context (contains redis connection)
        job_id: Unique job identifier
        rows: Parsed CSV rows
        today: Reference date as YYYY-MM-DD (defaults to the worker's date)

    Returns:
        JobResult as dict
    """
    logger.info(f"Processing invoice batch job {job_id} with {len(rows)} row(s)")

    settings: Settings = ctx.get("settings") or get_settings()
    pipeline: FXConversionPipeline = ctx.get("pipeline") or create_pipeline(settings)
    redis = ctx["redis"]
    ttl = settings.job_result_ttl

    result = JobResult(
        job_id=job_id,
        status="processing",
        row_count=len(rows),
        created_at=await _submitted_at(redis, job_id),
    )
    await redis.set(job_key(job_id), result.model_dump_json(), ex=ttl)

    try:
        invoices = await pipeline.process(rows, today=parse_iso_date(today))
        summary = build_report_summary(invoices)

        result.invoices = [json.loads(invoice.model_dump_json()) for invoice in invoices]
        result.summary = json.loads(summary.model_dump_json())
        result.status = "completed"
    except Exception as e:
        logger.exception(f"Job {job_id} failed with error: {e}")
        result.status = "failed"
        result.error = str(e)

    result.completed_at = datetime.now(UTC).isoformat()
    await redis.set(job_key(job_id), result.model_dump_json(), ex=ttl)
    logger.info(f"Job {job_id} completed with status: {result.status}")

    return result.model_dump()


async def startup(ctx: dict[str, Any]) -> None:
    """Worker startup hook - build the shared pipeline.

    The pipeline's rate cache lives for the whole worker process, so rates
    fetched for one job are reused by the next.
    """
    logger.info("Initializing worker services...")
    settings = get_settings()
    ctx["settings"] = settings
    ctx["pipeline"] = create_pipeline(settings)
    logger.info("Worker services initialized")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown hook - cleanup resources."""
    logger.info("Worker shutting down...")


class WorkerSettings:
    """arq worker settings.

    Defines the worker configuration including:
    - Task functions to register
    - Redis connection settings
    - Job timeout settings
    """

    functions = [process_invoice_batch]
    on_startup = startup
    on_shutdown = shutdown

    # Overridden from Settings by worker.configure_worker
    redis_settings = None
    max_jobs = 10
    job_timeout = 300
    keep_result = 86400

    @classmethod
    def get_redis_settings(cls) -> Any:
        """Get Redis settings from configuration."""
        from arq.connections import RedisSettings as ArqRedisSettings

        return ArqRedisSettings.from_dsn(get_settings().redis_url)
