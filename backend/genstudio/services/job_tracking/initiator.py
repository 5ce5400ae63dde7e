import logging
import uuid
from typing import Any, Dict

from genstudio.core.exceptions import GenStudioException, SchedulerUnavailableError, ValidationError
from genstudio.schemas.job import JobStatus, StartJobResponse

from .recorder import JobRecorder
from .scheduler import JobScheduler
from .store import KeyValueStore
from .worker import get_worker_class

logger = logging.getLogger(__name__)


class JobInitiator:
    """Validates input, writes the pending record and schedules the worker"""

    def __init__(self, store: KeyValueStore, scheduler: JobScheduler):
        self.store = store
        self.scheduler = scheduler

    async def start(self, kind: str, payload: Dict[str, Any]) -> StartJobResponse:
        try:
            worker_class = get_worker_class(kind)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        params = worker_class.validate(payload)

        job_id = uuid.uuid4().hex
        recorder = JobRecorder(self.store, job_id)
        # Store errors propagate: the caller is waiting on this path
        await recorder.create(kind)
        await recorder.log("Generation process initiated.")
        logger.info(f"Created {kind} job {job_id}")

        try:
            self.scheduler.schedule(kind, job_id, params)
        except Exception as e:
            logger.error(f"Could not schedule {kind} job {job_id}: {e}")
            if isinstance(e, GenStudioException):
                await recorder.fail(e.message)
                raise
            await recorder.fail(SchedulerUnavailableError().message)
            raise SchedulerUnavailableError() from e

        return StartJobResponse(job_id=job_id, status=JobStatus.PENDING)
