"""
Background retention loop for the in-memory store.

Redis expires keys natively, so this only runs for the memory backend.
Job records and their streams are dropped once their retention window
(JOB_RECORD_TTL_SECONDS) has passed, whatever the job outcome.
"""

import asyncio
import logging

from genstudio.core.config import settings

from .store import MemoryStore

logger = logging.getLogger(__name__)


async def cleanup_expired_jobs(store: MemoryStore, interval: float = None) -> None:
    """Infinite loop: sleep, then purge expired keys"""
    interval = interval or settings.STORE_CLEANUP_INTERVAL_SECONDS
    while True:
        try:
            await asyncio.sleep(interval)
            removed = store.purge_expired()
            if removed:
                logger.info(f"Purged {removed} expired key(s) from the job store")
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Job store cleanup failed: {e}")
