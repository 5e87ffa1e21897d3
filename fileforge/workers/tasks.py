import logging

from fastapi import BackgroundTasks

from fileforge.core.config import get_settings
from fileforge.repositories import get_repository
from fileforge.services.dispatcher import BatchLauncher
from fileforge.services.processing import get_processors
from fileforge.services.retention import RetentionService
from fileforge.services.runner import JobRunner
from fileforge.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="fileforge.workers.tasks.process_batch")
def process_batch(batch_id: str, job_ids: list[str]) -> dict[str, str | None]:
    runner = JobRunner(get_repository(), get_processors())
    return runner.run_batch(batch_id, job_ids)


@celery_app.task(name="fileforge.workers.tasks.retention_cleanup_job")
def retention_cleanup_job() -> int:
    days = get_settings().retention_days
    deleted = RetentionService(get_repository()).cleanup(days=days)
    logger.info("scheduled_retention_finished", extra={"deleted": deleted, "days": days})
    return deleted


def batch_launcher(background_tasks: BackgroundTasks | None = None) -> BatchLauncher:
    """In eager mode the batch runs after the response is sent; otherwise it is queued for a worker."""
    settings = get_settings()

    def launch(batch_id: str, job_ids: list[str]) -> None:
        if settings.celery_task_always_eager:
            if background_tasks is not None:
                background_tasks.add_task(process_batch, batch_id, job_ids)
            else:
                process_batch(batch_id, job_ids)
        else:
            process_batch.delay(batch_id, job_ids)

    return launch
