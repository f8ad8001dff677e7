"""
Response shape registry

Providers return artifact URLs under inconsistent field names. Each shape is a
pure function (payload) -> url | None; shapes are tried in registry order and
the first hit wins. New provider shapes are added by appending to a registry.
"""

from typing import Any, Callable, Iterable, NamedTuple, Optional
from urllib.parse import urlparse

VIDEO_EXTENSIONS = (".mp4", ".mov", ".webm", ".m4v")


class ResponseShape(NamedTuple):
    name: str
    extract: Callable[[Any], Optional[str]]


def _get(payload: Any, *path: Any) -> Any:
    """Walk dict keys / list indexes, returning None on any miss."""
    current = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, (list, tuple)) or len(current) <= step:
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
    return current


def _url_at(*path: Any) -> Callable[[Any], Optional[str]]:
    def extract(payload: Any) -> Optional[str]:
        value = _get(payload, *path)
        return value if isinstance(value, str) and value else None
    return extract


def is_video_url(value: Any) -> bool:
    """http(s) string whose path ends in a known video extension."""
    if not isinstance(value, str) or not value.startswith("http"):
        return False
    path = urlparse(value).path.lower()
    return path.endswith(VIDEO_EXTENSIONS)


def find_video_url(payload: Any, _depth: int = 0) -> Optional[str]:
    """
    Recursively scan a payload for a video URL.

    At each level: a string that looks like a video file, then a ``url``
    string field, then ``video.url``, then every nested value in order.
    """
    if _depth > 12 or payload is None:
        return None

    if isinstance(payload, str):
        return payload if is_video_url(payload) else None

    if isinstance(payload, dict):
        url = payload.get("url")
        if isinstance(url, str) and url:
            return url
        nested = _get(payload, "video", "url")
        if isinstance(nested, str) and nested:
            return nested
        values = payload.values()
    elif isinstance(payload, (list, tuple)):
        values = payload
    else:
        return None

    for value in values:
        found = find_video_url(value, _depth + 1)
        if found:
            return found
    return None


IMAGE_RESPONSE_SHAPES = (
    ResponseShape("images[0].url", _url_at("images", 0, "url")),
    ResponseShape("data.images[0].url", _url_at("data", "images", 0, "url")),
    ResponseShape("image.url", _url_at("image", "url")),
    ResponseShape("url", _url_at("url")),
)

VIDEO_RESPONSE_SHAPES = (
    ResponseShape("video.url", _url_at("video", "url")),
    ResponseShape("data.video.url", _url_at("data", "video", "url")),
    ResponseShape("videos[0].url", _url_at("videos", 0, "url")),
    ResponseShape("recursive", find_video_url),
)

AUDIO_RESPONSE_SHAPES = (
    ResponseShape("audio_url", _url_at("audio_url")),
    ResponseShape("data.audio_url", _url_at("data", "audio_url")),
    ResponseShape("data[0].audio_url", _url_at("data", 0, "audio_url")),
    ResponseShape("[0].audio_url", _url_at(0, "audio_url")),
)


def extract_url(payload: Any, shapes: Iterable[ResponseShape]) -> Optional[str]:
    """Try each shape in order; None when nothing matches."""
    for shape in shapes:
        url = shape.extract(payload)
        if url:
            return url
    return None


def parse_image_response(payload: Any) -> Optional[str]:
    return extract_url(payload, IMAGE_RESPONSE_SHAPES)


def parse_video_response(payload: Any) -> Optional[str]:
    return extract_url(payload, VIDEO_RESPONSE_SHAPES)


def parse_audio_response(payload: Any) -> Optional[str]:
    return extract_url(payload, AUDIO_RESPONSE_SHAPES)
