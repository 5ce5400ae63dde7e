"""
Gemini streaming client that surfaces the model's thinking and the code it
writes as a sequence of events.

The model is asked to reason first and then answer with fenced html, css,
javascript (and optionally json) blocks. Each streamed chunk is turned into
ThinkingEvent / CodeEvent / ProgressEvent values that the website worker
appends to the job's update streams.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Tuple, Union

import aiohttp

from genstudio.core.config import settings
from genstudio.core.exceptions import VendorConfigurationError, VendorError, VendorTransportError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

CODE_FENCE_RE = re.compile(r"```(javascript|json|html|css|js)(?!\w)[^\n]*\n(.*?)(?:```|\Z)", re.DOTALL)
CODE_TYPE_ALIASES = {"javascript": "js"}


@dataclass
class ThinkingEvent:
    text: str  # Accumulated thinking so far


@dataclass
class CodeEvent:
    code_type: str  # html, css, js or json
    code: str


@dataclass
class ProgressEvent:
    message: str


GenerationEvent = Union[ThinkingEvent, CodeEvent, ProgressEvent]


WEBSITE_PROMPT_TEMPLATE = """You are an expert web designer and front-end developer.
Plan and build a complete, modern, responsive single-page website for the following request:

{prompt}

First think through the audience, page sections, color scheme and typography.
Then answer with exactly three fenced code blocks, in this order:
```html``` with the full document body markup,
```css``` with all styles,
```javascript``` with any interactivity.
Use <img id="SECTION-image" alt="DESCRIPTION"> placeholders (no src) wherever a photo belongs,
with a short, concrete description of the photo in the alt text."""


def build_website_prompt(prompt: str) -> str:
    return WEBSITE_PROMPT_TEMPLATE.format(prompt=prompt.strip())


class CodeBlockTracker:
    """Follows fenced code blocks in a growing text and reports the ones that changed"""

    def __init__(self):
        self.latest: Dict[str, str] = {}

    def feed(self, text: str) -> List[Tuple[str, str]]:
        changed = []
        for match in CODE_FENCE_RE.finditer(text):
            code_type = CODE_TYPE_ALIASES.get(match.group(1), match.group(1))
            code = match.group(2).strip()
            if code and self.latest.get(code_type) != code:
                self.latest[code_type] = code
                changed.append((code_type, code))
        return changed


def first_sentence(text: str, limit: int = 120) -> str:
    sentence = text.strip().split(".")[0].strip()
    return sentence[:limit]


def parse_sse_line(raw_line: bytes) -> Optional[Dict]:
    """Decode one ``data:`` line of the event stream, or None if it carries no JSON object"""
    line = raw_line.decode("utf-8", "replace").strip()
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if not data:
        return None
    try:
        payload = json.loads(data)
    except ValueError:
        logger.warning(f"Skipping undecodable Gemini chunk: {data[:80]!r}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Skipping non-object Gemini chunk: {data[:80]!r}")
        return None
    return payload


class GeminiThinkingClient:
    """Streams generateContent with thoughts included"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL

    def _request_body(self, prompt: str) -> Dict:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "thinkingConfig": {"includeThoughts": True},
            },
        }

    async def _chunks(self, prompt: str) -> AsyncIterator[Dict]:
        """Yield decoded SSE payloads from streamGenerateContent"""
        if not self.api_key:
            raise VendorConfigurationError()

        url = f"{GEMINI_BASE_URL}/models/{self.model}:streamGenerateContent"
        timeout = aiohttp.ClientTimeout(total=settings.VENDOR_REQUEST_TIMEOUT * 5)
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.post(url, params={"alt": "sse"}, json=self._request_body(prompt)) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(f"Gemini returned {response.status}: {body[:500]}")
                        raise VendorError(self._error_message(response.status, body))

                    async for raw_line in response.content:
                        payload = parse_sse_line(raw_line)
                        if payload is not None:
                            yield payload
        except aiohttp.ClientError as e:
            logger.error(f"Gemini request failed: {e}")
            raise VendorTransportError() from e

    @staticmethod
    def _error_message(status: int, body: str) -> str:
        try:
            detail = json.loads(body).get("error", {}).get("message")
        except (ValueError, AttributeError):
            detail = None
        if detail:
            return f"Gemini API error ({status}): {detail}"
        return f"Gemini API error ({status})."

    async def stream(self, prompt: str) -> AsyncIterator[GenerationEvent]:
        thinking = ""
        answer = ""
        tracker = CodeBlockTracker()
        announced = set()

        yield ProgressEvent("Starting website generation with thinking...")

        async for chunk in self._chunks(prompt):
            candidates = chunk.get("candidates") or []
            if not candidates:
                continue
            for part in candidates[0].get("content", {}).get("parts", []):
                text = part.get("text")
                if not text:
                    continue
                if part.get("thought"):
                    thinking += text
                    yield ThinkingEvent(thinking)
                    continue

                answer += text
                for code_type, code in tracker.feed(answer):
                    if code_type not in announced:
                        announced.add(code_type)
                        yield ProgressEvent(f"Generating {code_type} code...")
                    yield CodeEvent(code_type, code)

        yield ProgressEvent("Website code generation complete!")
