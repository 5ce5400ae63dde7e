"""
Single writer for one job's record and log streams.

Only the job's own worker (and the initiator, for the pending record) ever
holds a recorder for a given job ID. Terminal states are absorbing: after
complete() or fail() every further write is refused.
"""

import json
import logging
from typing import Any, Optional

from genstudio.core.config import settings
from genstudio.schemas.job import JobRecord, JobStatus, utcnow

from . import keys
from .store import KeyValueStore

logger = logging.getLogger(__name__)


class JobRecorder:
    """Writes status, progress, artifacts and log lines for a single job"""

    def __init__(self, store: KeyValueStore, job_id: str, ttl_seconds: Optional[int] = None):
        self.store = store
        self.job_id = job_id
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.JOB_RECORD_TTL_SECONDS
        self._record: Optional[JobRecord] = None

    @property
    def record(self) -> Optional[JobRecord]:
        return self._record

    @property
    def is_closed(self) -> bool:
        return self._record is not None and self._record.is_terminal

    async def create(self, kind: str) -> JobRecord:
        """Write the initial pending record"""
        record = JobRecord(id=self.job_id, kind=kind, status=JobStatus.PENDING)
        await self._persist(record)
        return record

    async def load(self) -> Optional[JobRecord]:
        """Load the stored record so a worker in another process can continue it"""
        raw = await self.store.get(keys.record_key(self.job_id))
        if raw:
            self._record = JobRecord.model_validate_json(raw)
        return self._record

    async def _persist(self, record: JobRecord) -> None:
        await self.store.set(keys.record_key(self.job_id), record.to_json(), expire_seconds=self.ttl_seconds)
        self._record = record

    async def _update(self, **changes: Any) -> bool:
        if self._record is None:
            await self.load()
        if self.is_closed:
            logger.warning(
                f"Ignoring update for job {self.job_id}: already {self._record.status.value}"
            )
            return False

        base = self._record.model_dump() if self._record else {"id": self.job_id}
        base.update(changes)
        base["updated_at"] = utcnow()
        await self._persist(JobRecord(**base))
        return True

    async def mark_processing(self, stage: Optional[str] = None, progress: Optional[float] = None) -> bool:
        changes = {"status": JobStatus.PROCESSING, "stage": stage}
        if progress is not None:
            changes["progress"] = self._monotonic(progress)
        return await self._update(**changes)

    async def set_progress(self, progress: float, stage: Optional[str] = None) -> bool:
        changes = {"progress": self._monotonic(progress)}
        if stage is not None:
            changes["stage"] = stage
        return await self._update(**changes)

    async def set_stage(self, stage: str) -> bool:
        return await self._update(stage=stage)

    async def set_external_ref(self, external_ref: str) -> bool:
        return await self._update(external_ref=external_ref)

    async def complete(self, result: Any) -> bool:
        return await self._update(status=JobStatus.COMPLETED, result=result, error=None, progress=1.0)

    async def fail(self, error: str) -> bool:
        return await self._update(status=JobStatus.FAILED, error=error, result=None)

    def _monotonic(self, progress: float) -> float:
        progress = min(max(float(progress), 0.0), 1.0)
        current = self._record.progress if self._record else None
        if current is not None and progress < current:
            return current
        return progress

    async def _append(self, key: str, value: str) -> bool:
        if self.is_closed:
            logger.warning(f"Ignoring stream append for finished job {self.job_id}: {key}")
            return False
        await self.store.rpush(key, value)
        return True

    async def log(self, message: str) -> bool:
        return await self._append(keys.status_key(self.job_id), message)

    async def thinking(self, text: str) -> bool:
        return await self._append(keys.thinking_key(self.job_id), text)

    async def code(self, code_type: str, code: str) -> bool:
        return await self._append(keys.code_key(self.job_id, code_type), code)

    async def image_preview(self, image_id: str, url: str, **extra: Any) -> bool:
        payload = {"id": image_id, "url": url, **extra}
        return await self._append(keys.images_key(self.job_id), json.dumps(payload))
