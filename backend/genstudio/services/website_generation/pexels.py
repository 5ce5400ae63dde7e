import logging
from typing import Any, Dict, List, Optional

import aiohttp
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from genstudio.core.config import settings
from genstudio.core.exceptions import VendorConfigurationError, VendorError, VendorTransportError

logger = logging.getLogger(__name__)

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"


class PexelsImageSearch:
    """Stock photo lookup used to fill website image placeholders"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.PEXELS_API_KEY

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @retry(
        retry=retry_if_exception_type(VendorTransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True
    )
    async def search(self, query: str, per_page: int = 1, orientation: str = "landscape") -> List[Dict[str, Any]]:
        if not self.api_key:
            raise VendorConfigurationError()

        params = {"query": query, "per_page": str(per_page), "orientation": orientation}
        timeout = aiohttp.ClientTimeout(total=settings.VENDOR_REQUEST_TIMEOUT)
        try:
            async with aiohttp.ClientSession(timeout=timeout, headers={"Authorization": self.api_key}) as session:
                async with session.get(PEXELS_SEARCH_URL, params=params) as response:
                    if response.status == 429 or response.status >= 500:
                        raise VendorTransportError(f"Pexels is temporarily unavailable ({response.status}).")
                    if response.status != 200:
                        raise VendorError(f"Pexels API error ({response.status}).")
                    data = await response.json()
        except aiohttp.ClientError as e:
            logger.warning(f"Pexels search failed for {query!r}: {e}")
            raise VendorTransportError() from e

        return data.get("photos", [])

    @staticmethod
    def photo_url(photo: Dict[str, Any], size: str = "large") -> Optional[str]:
        src = photo.get("src") or {}
        return src.get(size) or src.get("original")
