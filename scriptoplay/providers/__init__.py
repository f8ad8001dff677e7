"""
Providers for external generation services (fal.ai queue).
"""

from .fal_provider import (
    DEFAULT_VIDEO_MODEL,
    IMAGE_FALLBACK_MODEL,
    IMAGE_PRIMARY_MODEL,
    FalProvider,
    clamp_duration,
)
from .response_shapes import (
    ResponseShape,
    extract_url,
    find_video_url,
    parse_audio_response,
    parse_image_response,
    parse_video_response,
)

__all__ = [
    "FalProvider",
    "clamp_duration",
    "IMAGE_PRIMARY_MODEL",
    "IMAGE_FALLBACK_MODEL",
    "DEFAULT_VIDEO_MODEL",
    "ResponseShape",
    "extract_url",
    "find_video_url",
    "parse_image_response",
    "parse_video_response",
    "parse_audio_response",
]
