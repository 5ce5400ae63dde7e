"""
Video generation worker: submit to a vendor, poll until the render is done,
then persist the video reference on the job record.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from genstudio.core.config import settings
from genstudio.core.exceptions import ValidationError
from genstudio.schemas.job import VideoJobRequest
from genstudio.services.job_tracking.recorder import JobRecorder
from genstudio.services.job_tracking.store import KeyValueStore
from genstudio.services.job_tracking.worker import BackgroundWorker, SleepFn, poll_until_done, register_worker

from . import providers  # noqa: F401  registers the built-in providers
from .base_provider import BaseVideoProvider, get_provider, get_provider_class

logger = logging.getLogger(__name__)


class VideoGenerationWorker(BackgroundWorker):
    """Drives one vendor render from submission to a stored video URL"""

    def __init__(
        self,
        store: KeyValueStore,
        sleep: SleepFn = asyncio.sleep,
        provider_factory: Optional[Callable[[str], BaseVideoProvider]] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        super().__init__(store, sleep=sleep)
        self.provider_factory = provider_factory or get_provider
        self.poll_interval = settings.VIDEO_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_attempts = settings.VIDEO_POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts

    @classmethod
    def validate(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            request = VideoJobRequest.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid video request: {e.errors()[0]['msg']}") from e

        try:
            provider_class = get_provider_class(request.provider)
        except ValueError as e:
            raise ValidationError(f"Unknown video provider: {request.provider}") from e

        params = request.model_dump()
        provider_class.validate(params)
        return params

    async def execute(self, recorder: JobRecorder, params: Dict[str, Any]) -> Dict[str, Any]:
        provider_name = params["provider"]

        async with self.provider_factory(provider_name) as provider:
            await recorder.set_progress(0.05, stage="submitting")
            await recorder.log(f"Submitting video request to {provider.display_name()}...")
            submitted = await provider.submit(params)

            await recorder.set_external_ref(submitted.external_ref)
            await recorder.set_progress(0.1, stage="rendering")
            await recorder.log(f"Render started ({submitted.external_ref}). Waiting for the video...")

            result = submitted.result
            if result is None:
                result = await poll_until_done(
                    provider.poll,
                    submitted.external_ref,
                    recorder=recorder,
                    max_attempts=self.max_attempts,
                    interval=self.poll_interval,
                    sleep=self.sleep,
                    label="Video generation",
                )

        await recorder.log("Video generation finished!")
        return {
            **result,
            "provider": provider_name,
            "externalRef": submitted.external_ref,
        }


register_worker("video", VideoGenerationWorker)
