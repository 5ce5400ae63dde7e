"""
Celery tasks for generation jobs
"""

import asyncio
import logging
from typing import Any, Dict

from genstudio.core.celery_app import celery_app
from genstudio.services.job_tracking.store import get_job_store
from genstudio.services.job_tracking.worker import build_worker

logger = logging.getLogger(__name__)


async def _run_job(kind: str, job_id: str, payload: Dict[str, Any]) -> None:
    store = get_job_store()
    try:
        await build_worker(kind, store).run(job_id, payload)
    finally:
        await store.close()


@celery_app.task(bind=True, name="generation.run_job", acks_late=False)
def run_generation_job(self, kind: str, job_id: str, payload: Dict[str, Any]) -> str:
    """
    Run one generation job to a terminal state.

    The worker records every failure on the job itself, so the task never
    retries; a retry would re-submit the job to the vendor.
    """
    logger.info(f"Starting {kind} job {job_id} (task {self.request.id})")
    asyncio.run(_run_job(kind, job_id, payload))
    return job_id
