"""
Website Generation Services Package

Gemini thinking stream, Pexels image search and the background worker that
publishes live thinking/code updates for a website job.
"""

from .gemini_thinking import (
    CodeEvent,
    GeminiThinkingClient,
    ProgressEvent,
    ThinkingEvent,
    build_website_prompt
)

from .pexels import PexelsImageSearch
from .pipeline import WebsiteGenerationWorker

__all__ = [
    "CodeEvent",
    "GeminiThinkingClient",
    "ProgressEvent",
    "ThinkingEvent",
    "build_website_prompt",
    "PexelsImageSearch",
    "WebsiteGenerationWorker"
]
