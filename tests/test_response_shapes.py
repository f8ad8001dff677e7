"""
Unit tests for the response shape registry.

Tests:
1. Image shapes and their priority
2. Recursive video URL scan
3. Audio shapes
"""

import pytest

from scriptoplay.providers.response_shapes import (
    IMAGE_RESPONSE_SHAPES,
    extract_url,
    find_video_url,
    is_video_url,
    parse_audio_response,
    parse_image_response,
    parse_video_response,
)


class TestImageShapes:
    """Image payloads from different fal models."""

    @pytest.mark.parametrize("payload", [
        {"images": [{"url": "https://fal.media/a.png"}]},
        {"data": {"images": [{"url": "https://fal.media/a.png"}]}},
        {"image": {"url": "https://fal.media/a.png"}},
        {"url": "https://fal.media/a.png"},
    ])
    def test_each_known_shape(self, payload):
        assert parse_image_response(payload) == "https://fal.media/a.png"

    def test_images_list_wins_over_bare_url(self):
        payload = {
            "url": "https://fal.media/bare.png",
            "images": [{"url": "https://fal.media/first.png"}],
        }
        assert parse_image_response(payload) == "https://fal.media/first.png"

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {"images": []},
        {"images": [{}]},
        {"image": {"url": ""}},
        {"data": "not a dict"},
        ["https://fal.media/a.png"],
        "https://fal.media/a.png",
    ])
    def test_unknown_shapes_return_none(self, payload):
        assert parse_image_response(payload) is None

    def test_registry_order(self):
        names = [shape.name for shape in IMAGE_RESPONSE_SHAPES]
        assert names == ["images[0].url", "data.images[0].url", "image.url", "url"]

    def test_custom_registry(self):
        from scriptoplay.providers.response_shapes import ResponseShape

        shapes = (ResponseShape("output", lambda p: p.get("output")),)
        assert extract_url({"output": "https://x/y.png"}, shapes) == "https://x/y.png"


class TestVideoScan:
    """Recursive scan used on status and result payloads."""

    def test_video_url_field(self):
        assert find_video_url({"video": {"url": "https://v.fal.media/out"}}) == "https://v.fal.media/out"

    def test_nested_string_with_extension(self):
        payload = {"response": {"outputs": [{"file": "https://cdn.test/render.mp4?token=1"}]}}
        assert find_video_url(payload) == "https://cdn.test/render.mp4?token=1"

    def test_ignores_non_video_strings(self):
        payload = {
            "status": "COMPLETED",
            "response_url": "https://queue.fal.run/fal-ai/luma/requests/abc",
            "logs": [{"message": "Completed"}],
        }
        assert find_video_url(payload) is None

    @pytest.mark.parametrize("value,expected", [
        ("https://a.test/x.mp4", True),
        ("https://a.test/x.MOV", True),
        ("https://a.test/x.webm", True),
        ("https://a.test/x.png", False),
        ("ftp://a.test/x.mp4", False),
        ("x.mp4", False),
        (42, False),
    ])
    def test_is_video_url(self, value, expected):
        assert is_video_url(value) is expected

    def test_parse_video_prefers_video_field(self):
        payload = {
            "video": {"url": "https://v.fal.media/main.mp4"},
            "thumbnail": {"url": "https://v.fal.media/thumb.png"},
        }
        assert parse_video_response(payload) == "https://v.fal.media/main.mp4"

    def test_videos_list(self):
        assert parse_video_response({"videos": [{"url": "https://v.test/0.mp4"}]}) == "https://v.test/0.mp4"


class TestAudioShapes:

    @pytest.mark.parametrize("payload", [
        {"audio_url": "https://cdn.test/a.mp3"},
        {"data": {"audio_url": "https://cdn.test/a.mp3"}},
        {"data": [{"audio_url": "https://cdn.test/a.mp3"}, {"audio_url": "https://cdn.test/b.mp3"}]},
        [{"audio_url": "https://cdn.test/a.mp3"}],
    ])
    def test_audio_shapes(self, payload):
        assert parse_audio_response(payload) == "https://cdn.test/a.mp3"

    def test_missing_audio(self):
        assert parse_audio_response({"data": [{"state": "running"}]}) is None
