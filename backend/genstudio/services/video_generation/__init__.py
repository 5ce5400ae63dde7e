"""
Video Generation Services Package

Vendor adapters for long-running video renders (Stability, Runway,
Creatomate) and the background worker that tracks them to completion.
"""

from .base_provider import (
    BaseVideoProvider,
    PollResult,
    SubmitResult,
    get_provider,
    register_provider
)

from .providers import (
    StabilityVideoProvider,
    RunwayVideoProvider,
    CreatomateProvider,
    MockVideoProvider
)

from .pipeline import VideoGenerationWorker

__all__ = [
    "BaseVideoProvider",
    "PollResult",
    "SubmitResult",
    "get_provider",
    "register_provider",
    "StabilityVideoProvider",
    "RunwayVideoProvider",
    "CreatomateProvider",
    "MockVideoProvider",
    "VideoGenerationWorker"
]
