"""
Scriptoplay Generation Services
"""

from .fallback_policy import FallbackOutcome, FallbackPolicy
from .generation_errors import (
    ArtifactExtractionError,
    AssemblyFailedError,
    CreditExhaustedError,
    GenerationError,
    GenerationFailedError,
    GenerationTimeoutError,
    classify_provider_error,
)
from .job_poller import VideoJobPoller
from .media_engine import MediaEngine
from .orchestrator import GenerationOrchestrator, get_orchestrator
from .video_assembly_service import VideoAssemblyService, probe_duration
from .video_router import select_video_model

__all__ = [
    # Orchestrator
    "GenerationOrchestrator",
    "get_orchestrator",
    # Fallback
    "FallbackPolicy",
    "FallbackOutcome",
    # Video jobs
    "VideoJobPoller",
    "select_video_model",
    # Assembly
    "MediaEngine",
    "VideoAssemblyService",
    "probe_duration",
    # Errors
    "GenerationError",
    "CreditExhaustedError",
    "GenerationFailedError",
    "ArtifactExtractionError",
    "GenerationTimeoutError",
    "AssemblyFailedError",
    "classify_provider_error",
]
