"""
Base provider class for video generation services
"""

import abc
import json
import logging
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass
import aiohttp
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from genstudio.core.config import settings
from genstudio.core.exceptions import VendorConfigurationError, VendorError, VendorTransportError

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """Vendor acknowledgement of a new generation job"""
    external_ref: str
    status: Optional[str] = None
    result: Optional[Dict[str, Any]] = None


@dataclass
class PollResult:
    """One observation of a vendor job"""
    done: bool
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    progress: Optional[float] = None
    stage: Optional[str] = None


class BaseVideoProvider(abc.ABC):
    """Base class for all video generation providers"""

    name: str = ""

    def __init__(self, api_key: str, base_url: str):
        self.api_key = api_key
        self.base_url = base_url
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        if not self.api_key:
            raise VendorConfigurationError()
        timeout = aiohttp.ClientTimeout(total=settings.VENDOR_REQUEST_TIMEOUT)
        connector = aiohttp.TCPConnector(limit=10, limit_per_host=5)
        self.session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            headers=self._get_default_headers()
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default headers for API requests"""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": "GenStudio-VideoGeneration/1.0"
        }

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    @classmethod
    @abc.abstractmethod
    def validate(cls, params: Dict[str, Any]) -> None:
        """Raise ValidationError if params cannot be submitted to this vendor"""
        pass

    @abc.abstractmethod
    async def submit(self, params: Dict[str, Any]) -> SubmitResult:
        """Start a generation job on the vendor"""
        pass

    @abc.abstractmethod
    async def poll(self, external_ref: str) -> PollResult:
        """Check the status of a vendor job"""
        pass

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        form: Optional[aiohttp.FormData] = None,
        params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Make a JSON API request"""
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")

        try:
            async with self.session.request(
                method=method,
                url=self._url(endpoint),
                json=data,
                data=form,
                params=params,
                headers={"Accept": "application/json"}
            ) as response:

                if response.status == 429:
                    raise VendorError("Rate limit exceeded. Please wait and try again.")

                if response.status >= 400:
                    body = await response.text()
                    logger.error(f"{self.__class__.__name__} {method} {endpoint} returned {response.status}: {body[:500]}")
                    raise VendorError(self._error_message(response.status, body))

                content_type = response.headers.get('Content-Type', '')
                if 'application/json' in content_type:
                    return await response.json()
                else:
                    text = await response.text()
                    return {"response": text}

        except aiohttp.ClientError as e:
            logger.error(f"Request failed for {self.__class__.__name__}: {e}")
            raise VendorTransportError() from e

    @retry(
        retry=retry_if_exception_type(VendorTransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Make a JSON API request, retrying transport failures"""
        return await self._request(method, endpoint, data=data, params=params)

    async def _get(self, endpoint: str, accept: str = "application/json") -> Tuple[int, bytes, str]:
        """Single GET used while polling; returns status, body and content type"""
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")

        try:
            async with self.session.get(self._url(endpoint), headers={"Accept": accept}) as response:
                body = await response.read()
                return response.status, body, response.headers.get('Content-Type', '')
        except aiohttp.ClientError as e:
            logger.warning(f"Poll request failed for {self.__class__.__name__}: {e}")
            raise VendorTransportError() from e

    def _error_message(self, status: int, body: str) -> str:
        """End-user message for an error response, with the vendor's own detail when it sends one"""
        label = self.display_name()
        try:
            payload = json.loads(body)
        except (TypeError, ValueError):
            payload = None

        detail = None
        if isinstance(payload, dict):
            detail = payload.get("error_message") or payload.get("message") or payload.get("error")
            errors = payload.get("errors")
            if not detail and isinstance(errors, list) and errors:
                detail = "; ".join(str(e) for e in errors)
        if detail:
            return f"{label} API error ({status}): {detail}"
        return f"{label} API error ({status})."

    def _poll_failure(self, status: int, body: bytes, external_ref: str) -> PollResult:
        """
        Interpret a non-success poll response.

        404 and other client errors are final; rate limiting and server
        errors are treated as transient and cost one polling attempt.
        """
        if status == 404:
            return PollResult(
                done=True,
                error=f"{self.display_name()} generation {external_ref} was not found or expired."
            )
        if status == 429 or status >= 500:
            raise VendorTransportError(f"{self.display_name()} is temporarily unavailable ({status}).")
        return PollResult(done=True, error=self._error_message(status, body.decode("utf-8", "replace")))

    @classmethod
    def display_name(cls) -> str:
        return cls.__name__.replace("VideoProvider", "").replace("Provider", "") or "Vendor"


# Provider registry for dynamic loading
PROVIDER_REGISTRY: Dict[str, type] = {}


def register_provider(name: str, provider_class: type):
    """Register a new provider in the registry"""
    provider_class.name = name
    PROVIDER_REGISTRY[name] = provider_class


def get_provider_class(name: str) -> type:
    if name not in PROVIDER_REGISTRY:
        raise ValueError(f"Unknown provider: {name}")
    return PROVIDER_REGISTRY[name]


def get_provider(name: str, **kwargs) -> BaseVideoProvider:
    """Get a provider instance by name"""
    return get_provider_class(name)(**kwargs)
