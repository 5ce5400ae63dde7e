"""
Website generation worker: stream a Gemini thinking run, publish thinking and
code snapshots as they arrive, then swap image placeholders for stock photos.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from genstudio.core.exceptions import ValidationError, VendorError
from genstudio.schemas.job import WebsiteJobRequest
from genstudio.services.job_tracking.recorder import JobRecorder
from genstudio.services.job_tracking.store import KeyValueStore
from genstudio.services.job_tracking.worker import BackgroundWorker, SleepFn, register_worker

from .gemini_thinking import (
    CodeEvent,
    GeminiThinkingClient,
    ProgressEvent,
    ThinkingEvent,
    build_website_prompt,
    first_sentence,
)
from .images import enhance_search_term, extract_image_placeholders, replace_image
from .pexels import PexelsImageSearch

logger = logging.getLogger(__name__)

# Progress reached once the first snapshot of each code type arrives
CODE_PROGRESS = {"html": 0.3, "css": 0.45, "js": 0.55, "json": 0.6}
CODE_LABELS = {"html": "HTML", "css": "CSS", "js": "JavaScript", "json": "JSON"}

IMAGES_START_PROGRESS = 0.7
IMAGES_END_PROGRESS = 0.95


class WebsiteGenerationWorker(BackgroundWorker):
    """Builds a single-page website with live thinking and code updates"""

    def __init__(
        self,
        store: KeyValueStore,
        sleep: SleepFn = asyncio.sleep,
        generator_factory: Optional[Callable[[], GeminiThinkingClient]] = None,
        image_search_factory: Optional[Callable[[], PexelsImageSearch]] = None,
    ):
        super().__init__(store, sleep=sleep)
        self.generator_factory = generator_factory or GeminiThinkingClient
        self.image_search_factory = image_search_factory or PexelsImageSearch

    @classmethod
    def validate(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            request = WebsiteJobRequest.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid website request: {e.errors()[0]['msg']}") from e
        return request.model_dump()

    async def execute(self, recorder: JobRecorder, params: Dict[str, Any]) -> Dict[str, Any]:
        prompt = params["prompt"]
        generator = self.generator_factory()

        await recorder.set_progress(0.05, stage="planning")
        await recorder.log("Planning website structure...")

        thinking = ""
        code: Dict[str, str] = {}
        last_summary = None

        stream = generator.stream(build_website_prompt(prompt))
        try:
            async for event in stream:
                if isinstance(event, ThinkingEvent):
                    thinking = event.text
                    await recorder.thinking(thinking)
                    summary = first_sentence(thinking)
                    if summary and summary != last_summary:
                        last_summary = summary
                        await recorder.log(f"Thinking: {summary}...")
                elif isinstance(event, CodeEvent):
                    if event.code_type not in code:
                        await recorder.set_progress(CODE_PROGRESS.get(event.code_type, 0.3), stage="coding")
                        await recorder.log(f"{CODE_LABELS.get(event.code_type, event.code_type)} code generation in progress...")
                    code[event.code_type] = event.code
                    await recorder.code(event.code_type, event.code)
                elif isinstance(event, ProgressEvent):
                    await recorder.log(event.message)
        finally:
            await stream.aclose()

        html = code.get("html")
        if not html:
            raise VendorError("The website generator did not return any HTML.")

        html = await self._fill_images(recorder, html, prompt)
        if html != code["html"]:
            code["html"] = html
            await recorder.code("html", html)

        await recorder.log("Website generation finished!")
        return {
            "html": html,
            "css": code.get("css", ""),
            "js": code.get("js", ""),
            "json": code.get("json"),
            "thinking": thinking,
        }

    async def _fill_images(self, recorder: JobRecorder, html: str, prompt: str) -> str:
        placeholders = extract_image_placeholders(html)
        if not placeholders:
            return html

        search = self.image_search_factory()
        if not search.is_configured:
            await recorder.log("Skipping image search: no Pexels API key configured.")
            return html

        await recorder.set_progress(IMAGES_START_PROGRESS, stage="images")
        await recorder.log(f"Finding images for {len(placeholders)} placeholder(s)...")

        step = (IMAGES_END_PROGRESS - IMAGES_START_PROGRESS) / len(placeholders)
        for index, (image_id, alt) in enumerate(placeholders, start=1):
            section = image_id.split("-")[0]
            term = enhance_search_term(alt, image_id, section, prompt)
            try:
                photos = await search.search(term)
            except Exception as e:
                logger.warning(f"Image search failed for {image_id} ({term!r}): {e}")
                await recorder.log(f"Failed to replace image: {image_id}")
                continue

            url = search.photo_url(photos[0]) if photos else None
            if not url:
                await recorder.log(f"No image found for: {image_id}")
            else:
                html = replace_image(html, image_id, alt, url)
                await recorder.image_preview(image_id, url, description=alt, searchTerm=term)
                await recorder.log(f"Replaced image: {image_id}")

            await recorder.set_progress(IMAGES_START_PROGRESS + step * index)

        return html


register_worker("website", WebsiteGenerationWorker)
