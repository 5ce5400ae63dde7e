"""
Background worker base class and the bounded vendor polling loop
"""

import abc
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type

import aiohttp

from genstudio.core.config import settings
from genstudio.core.exceptions import (
    GenStudioException,
    VendorError,
    VendorTimeoutError,
    VendorTransportError,
)

from .recorder import JobRecorder
from .store import KeyValueStore

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]

TRANSIENT_ERRORS = (VendorTransportError, aiohttp.ClientError, asyncio.TimeoutError)

GENERIC_FAILURE_MESSAGE = "Unexpected error during generation. Please try again."
NETWORK_FAILURE_MESSAGE = "Could not reach the generation service. Please try again."


def describe_failure(exc: BaseException) -> str:
    """User-facing message for a failed job; never includes tracebacks"""
    if isinstance(exc, GenStudioException):
        return exc.message
    if isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError)):
        return NETWORK_FAILURE_MESSAGE
    return GENERIC_FAILURE_MESSAGE


async def _report_progress(recorder: JobRecorder, outcome: Any) -> None:
    progress = getattr(outcome, "progress", None)
    stage = getattr(outcome, "stage", None)
    if progress is not None:
        await recorder.set_progress(progress, stage=stage)
    elif stage and (recorder.record is None or recorder.record.stage != stage):
        await recorder.set_stage(stage)


async def poll_until_done(
    poll: Callable[[str], Awaitable[Any]],
    external_ref: str,
    recorder: Optional[JobRecorder] = None,
    max_attempts: Optional[int] = None,
    interval: Optional[float] = None,
    sleep: SleepFn = asyncio.sleep,
    label: str = "Generation",
) -> Any:
    """
    Poll a vendor until its job finishes.

    `poll` returns an object with done/result/error and optional
    progress/stage. Vendor-reported failures stop immediately; transient
    transport errors only consume an attempt.
    """
    max_attempts = settings.VIDEO_POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
    interval = settings.VIDEO_POLL_INTERVAL_SECONDS if interval is None else interval

    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            await sleep(interval)

        try:
            outcome = await poll(external_ref)
        except TRANSIENT_ERRORS as e:
            logger.warning(f"Polling attempt {attempt}/{max_attempts} for {external_ref} failed: {e}")
            continue

        if outcome.done:
            if outcome.error:
                raise VendorError(outcome.error)
            logger.info(f"{label} {external_ref} finished after {attempt} attempt(s)")
            return outcome.result

        logger.debug(f"{label} {external_ref} still in progress (attempt {attempt}/{max_attempts})")
        if recorder is not None:
            await _report_progress(recorder, outcome)

    raise VendorTimeoutError(f"{label} timed out after maximum polling attempts.")


class BackgroundWorker(abc.ABC):
    """Runs one job to a terminal state. run() never raises."""

    kind: str = ""

    def __init__(self, store: KeyValueStore, sleep: SleepFn = asyncio.sleep):
        self.store = store
        self.sleep = sleep

    @classmethod
    def validate(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Check input synchronously before a job exists. Raise ValidationError."""
        return payload

    @abc.abstractmethod
    async def execute(self, recorder: JobRecorder, params: Dict[str, Any]) -> Any:
        """Do the work, writing progress through the recorder. Returns the result."""
        pass

    def recorder_for(self, job_id: str) -> JobRecorder:
        return JobRecorder(self.store, job_id)

    async def run(self, job_id: str, payload: Dict[str, Any]) -> None:
        recorder = self.recorder_for(job_id)
        try:
            await recorder.load()
            await recorder.mark_processing(stage="starting")
            result = await self.execute(recorder, payload)
            await recorder.complete(result)
            logger.info(f"{self.kind} job {job_id} completed")
        except asyncio.CancelledError:
            logger.warning(f"{self.kind} job {job_id} cancelled")
            await self._record_failure(recorder, "Generation was interrupted before it finished.")
            raise
        except Exception as e:
            logger.exception(f"{self.kind} job {job_id} failed: {e}")
            await self._record_failure(recorder, describe_failure(e))

    async def _record_failure(self, recorder: JobRecorder, message: str) -> None:
        try:
            await recorder.log(f"Generation failed: {message}")
            await recorder.fail(message)
        except Exception as e:
            logger.error(f"Could not store failure for job {recorder.job_id}: {e}")


WORKER_REGISTRY: Dict[str, Type[BackgroundWorker]] = {}


def register_worker(kind: str, worker_class: Type[BackgroundWorker]) -> None:
    """Register a worker class for a job kind"""
    worker_class.kind = kind
    WORKER_REGISTRY[kind] = worker_class


def get_worker_class(kind: str) -> Type[BackgroundWorker]:
    _load_builtin_workers()
    if kind not in WORKER_REGISTRY:
        raise ValueError(f"Unknown job kind: {kind}")
    return WORKER_REGISTRY[kind]


def build_worker(kind: str, store: KeyValueStore, **kwargs) -> BackgroundWorker:
    return get_worker_class(kind)(store, **kwargs)


def _load_builtin_workers() -> None:
    # Importing the pipelines registers them
    from genstudio.services.video_generation import pipeline as _video  # noqa: F401
    from genstudio.services.website_generation import pipeline as _website  # noqa: F401
