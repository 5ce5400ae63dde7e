"""
Detached execution of background workers.

LocalScheduler runs workers as asyncio tasks in the API process.
CeleryScheduler hands them to the Celery worker fleet.
"""

import abc
import asyncio
import logging
from typing import Any, Dict, Set

from genstudio.core.config import settings
from genstudio.core.exceptions import SchedulerUnavailableError

from .store import KeyValueStore
from .worker import build_worker

logger = logging.getLogger(__name__)


class JobScheduler(abc.ABC):

    @abc.abstractmethod
    def schedule(self, kind: str, job_id: str, payload: Dict[str, Any]) -> None:
        """Start the worker for a job without waiting for it"""
        pass

    async def shutdown(self) -> None:
        return None


class LocalScheduler(JobScheduler):
    """Runs each job as its own asyncio task on the running loop"""

    def __init__(self, store: KeyValueStore, **worker_kwargs):
        self.store = store
        self.worker_kwargs = worker_kwargs
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    def schedule(self, kind: str, job_id: str, payload: Dict[str, Any]) -> None:
        worker = build_worker(kind, self.store, **self.worker_kwargs)
        task = asyncio.create_task(worker.run(job_id, payload), name=f"{kind}:{job_id}")
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Scheduled {kind} job {job_id} locally")

    async def wait_idle(self) -> None:
        """Wait for every scheduled job to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        if not self._tasks:
            return
        logger.info(f"Cancelling {len(self._tasks)} running job(s)")
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)


class CeleryScheduler(JobScheduler):
    """Enqueues jobs on the Celery broker"""

    def schedule(self, kind: str, job_id: str, payload: Dict[str, Any]) -> None:
        from genstudio.tasks.generation_tasks import run_generation_job

        try:
            run_generation_job.apply_async(args=[kind, job_id, payload], task_id=job_id)
        except Exception as e:
            logger.error(f"Failed to enqueue {kind} job {job_id}: {e}")
            raise SchedulerUnavailableError() from e
        logger.info(f"Enqueued {kind} job {job_id} on Celery")


def get_scheduler(store: KeyValueStore) -> JobScheduler:
    mode = settings.JOB_DISPATCH_MODE.lower()
    if mode == "local":
        return LocalScheduler(store)
    if mode == "celery":
        return CeleryScheduler()
    raise ValueError(f"Unknown job dispatch mode: {settings.JOB_DISPATCH_MODE}")
