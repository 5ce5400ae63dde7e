import asyncio
import logging
from typing import Optional

from genstudio.core.exceptions import PollingTimeoutError
from genstudio.schemas.job import JobRecord

from .reader import StatusReader
from .worker import SleepFn

logger = logging.getLogger(__name__)


async def wait_for_completion(
    reader: StatusReader,
    job_id: str,
    interval: float = 2.0,
    max_polls: Optional[int] = None,
    sleep: SleepFn = asyncio.sleep,
) -> JobRecord:
    """Poll get_status on a fixed interval until the job is terminal"""
    polls = 0
    while True:
        record = await reader.get_status(job_id)
        polls += 1
        if record.is_terminal:
            return record
        if max_polls is not None and polls >= max_polls:
            logger.warning(f"Stopped polling job {job_id} after {polls} polls")
            raise PollingTimeoutError()
        await sleep(interval)
