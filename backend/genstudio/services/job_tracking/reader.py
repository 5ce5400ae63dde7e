"""
Read-only accessors used by polling clients. Never mutate the store and
never raise to the caller.
"""

import json
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from genstudio.schemas.job import CodeUpdate, ImagePreview, JobRecord, UpdateView

from . import keys
from .store import KeyValueStore

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Generation process not found or expired."
PARSE_ERROR_MESSAGE = "Failed to parse stored status."
INVALID_FORMAT_MESSAGE = "Invalid status format stored."
READ_ERROR_MESSAGE = "Failed to retrieve status. Please try again."
UPDATES_ERROR_MESSAGE = "Error retrieving status updates."
PREVIEW_PARSE_ERROR = {"id": "error", "url": "/placeholder.svg?text=ParseError"}


def parse_record(job_id: str, raw: str) -> JobRecord:
    """Decode a stored record, falling back to a failed-shaped record"""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Error parsing status JSON for {job_id}: {e}")
        return JobRecord.failed(job_id, PARSE_ERROR_MESSAGE)

    try:
        return JobRecord.model_validate(data)
    except PydanticValidationError as e:
        logger.error(f"Invalid status format stored for {job_id}: {e}")
        return JobRecord.failed(job_id, INVALID_FORMAT_MESSAGE)


def _latest(items: List[str]) -> Optional[str]:
    return items[-1] if items else None


def _parse_previews(raw_items: List[str]) -> List[ImagePreview]:
    previews = []
    for item in raw_items:
        try:
            data = json.loads(item)
        except (TypeError, ValueError):
            logger.error(f"Error parsing image preview JSON: {item[:80]!r}")
            data = PREVIEW_PARSE_ERROR
        if isinstance(data, dict) and data.get("id") and data.get("url"):
            previews.append(ImagePreview(id=str(data["id"]), url=str(data["url"]), description=data.get("description")))
    return previews


class StatusReader:
    """Status and update views for a job"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_status(self, job_id: str) -> JobRecord:
        try:
            raw = await self.store.get(keys.record_key(job_id))
        except Exception as e:
            logger.error(f"Error getting generation status for {job_id}: {e}")
            return JobRecord.failed(job_id, READ_ERROR_MESSAGE)

        if not raw:
            logger.info(f"No status found for generation ID: {job_id}")
            return JobRecord.failed(job_id, NOT_FOUND_MESSAGE)

        return parse_record(job_id, raw)

    async def get_updates(self, job_id: str) -> UpdateView:
        try:
            status_log = await self.store.lrange(keys.status_key(job_id), 0, -1)
            thinking = await self.store.lrange(keys.thinking_key(job_id), 0, -1)
            code = {}
            for code_type in keys.CODE_TYPES:
                latest = _latest(await self.store.lrange(keys.code_key(job_id, code_type), 0, -1))
                if latest:
                    code[code_type] = latest
            previews = _parse_previews(await self.store.lrange(keys.images_key(job_id), 0, -1))

            raw = await self.store.get(keys.record_key(job_id))
            record = parse_record(job_id, raw) if raw else None

            logger.debug(
                f"Found {len(previews)} image previews and {len(thinking)} thinking updates for generation {job_id}"
            )
            return UpdateView(
                status_log=status_log,
                latest_thinking=_latest(thinking),
                code_updates=CodeUpdate(**code),
                image_previews=previews,
                status=record.status if record else None,
                is_complete=bool(record and record.is_terminal),
            )
        except Exception as e:
            logger.error(f"Error getting generation updates for {job_id}: {e}")
            return UpdateView(status_log=[UPDATES_ERROR_MESSAGE], is_complete=False)
