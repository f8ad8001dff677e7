"""
Video Router

Picks a video model for a shot from what the caller supplies:
1. Image + audio → lip-sync capable Kling 1.6 Pro image-to-video
2. Explicit preference (o3 / fast / quality)
3. Tags (character and action shots both go to Kling 1.6 Pro)
4. Default: Kling 1.6 Pro
Every choice has an image-to-video and a text-to-video variant.
"""

import logging
from enum import Enum
from typing import Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


class ModelPreference(str, Enum):
    """Caller-facing quality preference"""
    AUTO = "auto"
    FAST = "fast"
    QUALITY = "quality"
    O3 = "o3"


# preference -> (image-to-video, text-to-video)
VIDEO_MODELS = {
    ModelPreference.O3: (
        "fal-ai/kling-video/o3/standard/image-to-video",
        "fal-ai/kling-video/o3/standard/text-to-video",
    ),
    ModelPreference.FAST: (
        "fal-ai/luma-dream-machine/ray-2/image-to-video",
        "fal-ai/luma-dream-machine/ray-2",
    ),
    ModelPreference.QUALITY: (
        "fal-ai/kling-video/v1.6/pro/image-to-video",
        "fal-ai/kling-video/v1.6/pro/text-to-video",
    ),
}

LIP_SYNC_MODEL = "fal-ai/kling-video/v1.6/pro/image-to-video"

CHARACTER_TAGS = {"dialogue", "character", "speaking", "acting"}
ACTION_TAGS = {"action", "running", "fight", "physics"}


def _pick(variants: Tuple[str, str], image_url: Optional[str]) -> str:
    return variants[0] if image_url else variants[1]


def select_video_model(
    image_url: Optional[str] = None,
    audio_url: Optional[str] = None,
    tags: Iterable[str] = (),
    preference: Optional[str] = None,
) -> str:
    """Choose the video model for a shot."""
    if audio_url and image_url:
        logger.info("[VideoRouter] Audio with image present, using lip-sync model")
        return LIP_SYNC_MODEL

    try:
        choice = ModelPreference(preference) if preference else ModelPreference.AUTO
    except ValueError:
        logger.warning(f"[VideoRouter] Unknown preference {preference!r}, using auto")
        choice = ModelPreference.AUTO

    if choice != ModelPreference.AUTO:
        model = _pick(VIDEO_MODELS[choice], image_url)
        logger.info(f"[VideoRouter] Preference {choice.value}: {model}")
        return model

    lowered = {tag.lower() for tag in tags}
    if lowered & CHARACTER_TAGS:
        reason = "character"
    elif lowered & ACTION_TAGS:
        reason = "action"
    else:
        reason = "default"

    model = _pick(VIDEO_MODELS[ModelPreference.QUALITY], image_url)
    logger.info(f"[VideoRouter] Auto ({reason}): {model}")
    return model
