"""
Concrete implementations of video generation providers
"""

import base64
import json
import logging
import re
import uuid
from typing import Any, Dict, Optional, Tuple

import aiohttp

from genstudio.core.config import settings
from genstudio.core.exceptions import ValidationError, VendorError
from .base_provider import (
    BaseVideoProvider,
    PollResult,
    SubmitResult,
    register_provider
)

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+/-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)
MAX_IMAGE_BYTES = 9 * 1024 * 1024  # Stability rejects requests over 10MiB


async def load_image_bytes(image: str) -> Tuple[bytes, str]:
    """Resolve a data URI or URL into raw bytes and a content type"""
    match = DATA_URI_RE.match(image)
    if match:
        mime = match.group("mime") or "image/png"
        data = match.group("data")
        try:
            raw = base64.b64decode(data) if match.group("b64") else data.encode()
        except ValueError as e:
            raise ValidationError("Image data URI is not valid base64.") from e
        return raw, mime

    # Separate session: vendor credentials must not be sent to third-party hosts
    timeout = aiohttp.ClientTimeout(total=settings.VENDOR_REQUEST_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.get(image) as response:
            if response.status != 200:
                raise VendorError(f"Failed to fetch image URL ({response.status}).")
            content_type = response.headers.get("Content-Type", "image/png").split(";")[0]
            return await response.read(), content_type


class StabilityVideoProvider(BaseVideoProvider):
    """Stability AI image-to-video"""

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.STABILITY_API_KEY
        super().__init__(api_key, "https://api.stability.ai/v2beta")

    @classmethod
    def validate(cls, params: Dict[str, Any]) -> None:
        if not params.get("image"):
            raise ValidationError("An image is required for Stability video generation.")

    async def submit(self, params: Dict[str, Any]) -> SubmitResult:
        image, content_type = await load_image_bytes(params["image"])
        if content_type not in ("image/jpeg", "image/png"):
            logger.warning(f"Image type {content_type} may not be supported by Stability, sending as PNG")
            content_type = "image/png"
        if len(image) > MAX_IMAGE_BYTES:
            logger.warning(f"Image size {len(image) / 1024 / 1024:.2f} MB may exceed the Stability request limit")

        options = params.get("params", {})
        form = aiohttp.FormData()
        form.add_field("image", image, filename=f"image.{content_type.split('/')[1]}", content_type=content_type)
        form.add_field("seed", str(options.get("seed", 0)))
        form.add_field("cfg_scale", str(options.get("cfg_scale", 1.8)))
        form.add_field("motion_bucket_id", str(options.get("motion_bucket_id", 127)))

        # Multipart bodies cannot be replayed, so no automatic retry here
        response = await self._request("POST", "/image-to-video", form=form)
        generation_id = response.get("id")
        if not generation_id:
            raise VendorError("No generation ID returned from Stability API.")

        logger.info(f"Stability generation started: {generation_id}")
        return SubmitResult(external_ref=generation_id)

    async def poll(self, external_ref: str) -> PollResult:
        status, body, _ = await self._get(f"/image-to-video/result/{external_ref}", accept="video/*")

        if status == 200:
            video = base64.b64encode(body).decode("ascii")
            return PollResult(done=True, result={"videoUrl": f"data:video/mp4;base64,{video}"})
        if status == 202:
            return PollResult(done=False, stage="rendering")
        return self._poll_failure(status, body, external_ref)


class RunwayVideoProvider(BaseVideoProvider):
    """Runway prompt + image to video"""

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.RUNWAY_API_KEY
        super().__init__(api_key, "https://api.runwayml.com/v1")

    def _get_default_headers(self) -> Dict[str, str]:
        headers = super()._get_default_headers()
        headers["Content-Type"] = "application/json"
        return headers

    @classmethod
    def validate(cls, params: Dict[str, Any]) -> None:
        if not params.get("prompt") or not params.get("image"):
            raise ValidationError("Runway video generation needs both a prompt and an image.")

    async def submit(self, params: Dict[str, Any]) -> SubmitResult:
        payload = {
            "prompt": params["prompt"],
            "image": params["image"],
            **params.get("params", {})
        }
        response = await self._make_request("POST", "/video", payload)
        generation_id = response.get("id")
        if not generation_id:
            raise VendorError("No generation ID returned from Runway API.")

        logger.info(f"Runway generation started: {generation_id}")
        return SubmitResult(external_ref=generation_id)

    async def poll(self, external_ref: str) -> PollResult:
        status, body, _ = await self._get(f"/video/{external_ref}")

        if status == 200:
            data = json.loads(body or b"{}")
            video_url = data.get("video_url")
            if not video_url:
                return PollResult(done=True, error="Runway finished without returning a video.")
            return PollResult(done=True, result={"videoUrl": video_url})
        if status == 202:
            return PollResult(done=False, stage="rendering")
        return self._poll_failure(status, body, external_ref)


class CreatomateProvider(BaseVideoProvider):
    """Creatomate template renders"""

    PROGRESS_BY_STATUS = {
        "planned": 0.1,
        "waiting": 0.3,
        "transcribing": 0.4,
        "rendering": 0.6,
    }
    DEFAULT_PROGRESS = 0.2

    def __init__(self, api_key: Optional[str] = None, template_ids: Optional[Dict[str, str]] = None):
        api_key = api_key if api_key is not None else settings.CREATOMATE_API_KEY
        super().__init__(api_key, "https://api.creatomate.com/v1")
        self.template_ids = template_ids or settings.CREATOMATE_TEMPLATE_IDS

    def _get_default_headers(self) -> Dict[str, str]:
        headers = super()._get_default_headers()
        headers["Content-Type"] = "application/json"
        return headers

    @classmethod
    def validate(cls, params: Dict[str, Any]) -> None:
        template = params.get("template")
        template_id = params.get("params", {}).get("template_id")
        if not template and not template_id:
            raise ValidationError("A Creatomate template or template_id is required.")
        if template and template not in settings.CREATOMATE_TEMPLATE_IDS:
            raise ValidationError(f"Unknown Creatomate template: {template}")
        if not params.get("modifications"):
            raise ValidationError("Creatomate renders need at least one template modification.")

    def _template_id(self, params: Dict[str, Any]) -> str:
        template_id = params.get("params", {}).get("template_id")
        return template_id or self.template_ids[params["template"]]

    async def submit(self, params: Dict[str, Any]) -> SubmitResult:
        payload = {
            "template_id": self._template_id(params),
            "modifications": params["modifications"]
        }
        response = await self._make_request("POST", "/renders", payload)

        # Creatomate answers with a list of renders, one per output format
        renders = response if isinstance(response, list) else [response]
        if not renders or not renders[0].get("id"):
            raise VendorError("No render returned from Creatomate API.")
        render = renders[0]

        logger.info(f"Creatomate render started: {render['id']} ({render.get('status')})")
        result = None
        if render.get("status") == "succeeded" and render.get("url"):
            result = {"videoUrl": render["url"]}
        return SubmitResult(external_ref=render["id"], status=render.get("status"), result=result)

    async def poll(self, external_ref: str) -> PollResult:
        status, body, _ = await self._get(f"/renders/{external_ref}")
        if status != 200:
            return self._poll_failure(status, body, external_ref)

        data = json.loads(body or b"{}")
        render_status = data.get("status")
        if render_status == "succeeded":
            if not data.get("url"):
                return PollResult(done=True, error="Creatomate finished without returning a video.")
            return PollResult(done=True, result={"videoUrl": data["url"]})
        if render_status == "failed":
            return PollResult(done=True, error=data.get("error_message") or "Rendering failed.")
        return PollResult(
            done=False,
            progress=self.PROGRESS_BY_STATUS.get(render_status, self.DEFAULT_PROGRESS),
            stage=render_status
        )


class MockVideoProvider(BaseVideoProvider):
    """Mock provider for testing and development"""

    def __init__(self, api_key: str = "mock-api-key", polls_to_complete: int = 3):
        super().__init__(api_key, "https://mock-provider.example")
        self.polls_to_complete = polls_to_complete
        self._polls: Dict[str, int] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    @classmethod
    def validate(cls, params: Dict[str, Any]) -> None:
        if not params.get("prompt") and not params.get("image"):
            raise ValidationError("A prompt or an image is required.")

    async def submit(self, params: Dict[str, Any]) -> SubmitResult:
        return SubmitResult(external_ref=f"mock_{uuid.uuid4().hex[:12]}")

    async def poll(self, external_ref: str) -> PollResult:
        count = self._polls.get(external_ref, 0) + 1
        self._polls[external_ref] = count
        if count >= self.polls_to_complete:
            return PollResult(done=True, result={"videoUrl": f"https://mock-videos.example/{external_ref}.mp4"})
        return PollResult(done=False, progress=count / self.polls_to_complete, stage="rendering")


register_provider("stability", StabilityVideoProvider)
register_provider("runway", RunwayVideoProvider)
register_provider("creatomate", CreatomateProvider)
register_provider("mock", MockVideoProvider)
