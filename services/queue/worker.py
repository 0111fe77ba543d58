"""arq worker runner for background invoice conversion.

Run with: python -m services.queue.worker
Or: arq services.queue.tasks.WorkerSettings
"""

import logging

from arq import run_worker
from arq.connections import RedisSettings as ArqRedisSettings

from services.queue.tasks import WorkerSettings
from services.shared.config import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_worker(settings: Settings) -> type[WorkerSettings]:
    """Apply queue limits and the Redis location to the arq worker class.

    Job results are kept by arq for as long as the JobResult records the API
    polls.
    """
    WorkerSettings.redis_settings = ArqRedisSettings.from_dsn(settings.redis_url)
    WorkerSettings.max_jobs = settings.queue_max_jobs
    WorkerSettings.job_timeout = settings.queue_job_timeout
    WorkerSettings.keep_result = settings.job_result_ttl
    return WorkerSettings


def main() -> None:
    """Run the arq worker."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    worker_settings = configure_worker(settings)
    logger.info(
        f"Starting invoice worker: provider={settings.fx_provider}, "
        f"reporting currency={settings.reporting_currency}, "
        f"max jobs={settings.queue_max_jobs}, job timeout={settings.queue_job_timeout}s"
    )
    run_worker(worker_settings)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
