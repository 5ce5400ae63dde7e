import logging
import sys

from genstudio.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = None) -> None:
    """Configure root logging for the API and the Celery worker"""
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    # aiohttp access logs are noisy at INFO while polling vendors
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
