"""
Models for the Scriptoplay generation core.
"""

from .generation_models import (
    AssemblyPlan,
    AudioParams,
    ErrorKind,
    FinalArtifact,
    GenerationKind,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    ImageParams,
    JobHandle,
    Scene,
    VideoParams,
)

__all__ = [
    # Requests / results
    "GenerationKind",
    "GenerationStatus",
    "ErrorKind",
    "GenerationRequest",
    "GenerationResult",
    "JobHandle",
    # Assembly
    "Scene",
    "AssemblyPlan",
    "FinalArtifact",
    # Caller parameters
    "ImageParams",
    "VideoParams",
    "AudioParams",
]
