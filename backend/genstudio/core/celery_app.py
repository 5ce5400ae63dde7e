from celery import Celery

from genstudio.core.config import settings

celery_app = Celery(
    "genstudio",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["genstudio.tasks.generation_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Workers own the job record until it is terminal; never hand a job to two workers
    task_acks_late=False,
    worker_prefetch_multiplier=1,
    result_expires=settings.JOB_RECORD_TTL_SECONDS,
)
