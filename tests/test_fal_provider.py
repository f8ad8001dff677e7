"""
Unit tests for the fal provider request builders and the calling-convention shim.
"""

import fal_client
import httpx
import pytest

from scriptoplay.models import GenerationKind, GenerationRequest
from scriptoplay.providers.fal_compat import call_with_request_id
from scriptoplay.providers.fal_provider import (
    DEFAULT_IMAGE_SIZE,
    FalProvider,
    clamp_duration,
    normalize_status,
)


def image_request(**kwargs) -> GenerationRequest:
    return GenerationRequest(kind=GenerationKind.IMAGE, prompt="a lighthouse at dusk", **kwargs)


def video_request(**kwargs) -> GenerationRequest:
    return GenerationRequest(kind=GenerationKind.VIDEO, prompt="waves crash", **kwargs)


class TestClampDuration:

    @pytest.mark.parametrize("duration,expected", [
        (7, "10"),
        ("7", "10"),
        (10, "10"),
        (5, "5"),
        (3, "5"),
        (5.5, "10"),
    ])
    def test_kling_models(self, duration, expected):
        assert clamp_duration("fal-ai/kling-video/v1.6/pro/image-to-video", duration) == expected

    def test_other_models_pass_through(self):
        assert clamp_duration("fal-ai/luma-dream-machine", 7) == "7"


class TestImageRequest:

    @pytest.mark.parametrize("aspect_ratio,size", [
        ("16:9", "landscape_16_9"),
        ("9:16", "portrait_16_9"),
        ("4:3", "landscape_4_3"),
        ("3:4", "portrait_4_3"),
        ("1:1", DEFAULT_IMAGE_SIZE),
        (None, DEFAULT_IMAGE_SIZE),
    ])
    def test_aspect_ratio_mapping(self, aspect_ratio, size):
        payload = FalProvider.build_image_request(image_request(constraints={"aspect_ratio": aspect_ratio}))
        assert payload["image_size"] == size
        assert payload["safety_tolerance"] == "2"

    def test_absent_references_are_omitted(self):
        payload = FalProvider.build_image_request(image_request(reference_inputs={"style_ref": None}))
        assert "style_ref" not in payload
        assert "char_ref" not in payload

    def test_references_are_forwarded(self):
        payload = FalProvider.build_image_request(image_request(reference_inputs={
            "style_ref": "https://cdn.test/style.png",
            "char_ref": "https://cdn.test/hero.png",
        }))
        assert payload["style_ref"] == "https://cdn.test/style.png"
        assert payload["char_ref"] == "https://cdn.test/hero.png"

    def test_takes_target_model(self):
        request = image_request(constraints={"aspect_ratio": "16:9"})

        primary = FalProvider.build_image_request(request, "fal-ai/flux-pro/v1.1")
        fallback = FalProvider.build_image_request(request, "fal-ai/flux/dev")

        assert primary == fallback
        assert primary["image_size"] == "landscape_16_9"


class TestVideoRequest:

    def test_defaults(self):
        payload = FalProvider.build_video_request(video_request(), "fal-ai/luma-dream-machine")
        assert payload == {"prompt": "waves crash", "aspect_ratio": "16:9"}

    def test_kling_duration_is_clamped(self):
        request = video_request(
            constraints={"duration": 7, "aspect_ratio": "9:16"},
            reference_inputs={"image_url": "https://cdn.test/start.png", "audio_url": None},
        )
        payload = FalProvider.build_video_request(request, "fal-ai/kling-video/v1.6/pro/image-to-video")

        assert payload["duration"] == "10"
        assert payload["aspect_ratio"] == "9:16"
        assert payload["image_url"] == "https://cdn.test/start.png"
        assert "audio_url" not in payload
        assert "image_end_url" not in payload


class TestClientCalls:

    @pytest.mark.asyncio
    async def test_submit_video_forwards_webhook(self, fal_provider, fal_client_mock):
        request_id = await fal_provider.submit_video(
            "fal-ai/luma-dream-machine", {"prompt": "x"}, webhook_url="https://hooks.test/fal",
        )

        assert request_id == "req-123"
        fal_client_mock.submit.assert_awaited_once_with(
            "fal-ai/luma-dream-machine", arguments={"prompt": "x"}, webhook_url="https://hooks.test/fal",
        )

    @pytest.mark.asyncio
    async def test_generate_image_subscribes(self, fal_provider, fal_client_mock):
        fal_client_mock.subscribe.return_value = {"images": [{"url": "https://fal.media/a.png"}]}

        result = await fal_provider.generate_image("fal-ai/flux/dev", {"prompt": "x"})

        assert result == {"images": [{"url": "https://fal.media/a.png"}]}
        args, kwargs = fal_client_mock.subscribe.call_args
        assert args == ("fal-ai/flux/dev",)
        assert kwargs["arguments"] == {"prompt": "x"}
        assert kwargs["with_logs"] is True

    @pytest.mark.asyncio
    async def test_get_status_normalizes_dicts(self, fal_provider, fal_client_mock):
        fal_client_mock.status.return_value = {"status": "IN_PROGRESS", "logs": []}

        status = await fal_provider.get_status("fal-ai/luma-dream-machine", "req-1")

        assert status == {"status": "IN_PROGRESS", "logs": []}

    @pytest.mark.asyncio
    async def test_fetch_response_sends_fal_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"video": {"url": "https://v.test/out.mp4"}})

        provider = FalProvider("secret", client=object(), transport=httpx.MockTransport(handler))
        data = await provider.fetch_response("https://queue.fal.run/requests/abc")

        assert seen["auth"] == "Key secret"
        assert data["video"]["url"] == "https://v.test/out.mp4"

    def test_normalize_status_copies_dict(self):
        raw = {"status": "COMPLETED"}
        normalized = normalize_status(raw)
        normalized["extra"] = 1
        assert "extra" not in raw

    def test_normalize_completed_object(self):
        normalized = normalize_status(fal_client.Completed(logs=[], metrics={}))

        assert normalized["status"] == "COMPLETED"
        assert "error" not in normalized

    def test_response_url_from_request_handle(self, fal_provider, fal_client_mock):
        fal_client_mock.get_handle.return_value.response_url = "https://queue.fal.run/m/requests/req-1"

        assert fal_provider.response_url_for("m", "req-1") == "https://queue.fal.run/m/requests/req-1"
        fal_client_mock.get_handle.assert_called_once_with("m", "req-1")

    def test_response_url_without_handle(self, fal_provider, fal_client_mock):
        fal_client_mock.get_handle.side_effect = AttributeError("get_handle")

        assert fal_provider.response_url_for("m", "req-1") is None


class TestCallingConventions:
    """The shim tries requestId=, then request_id=, then positional."""

    @pytest.mark.asyncio
    async def test_camel_case_keyword_first(self):
        calls = []

        async def status(application, requestId, with_logs=False):
            calls.append(("camel", requestId, with_logs))
            return "ok"

        assert await call_with_request_id(status, "app", "rid", with_logs=True) == "ok"
        assert calls == [("camel", "rid", True)]

    @pytest.mark.asyncio
    async def test_snake_case_keyword(self):
        async def status(application, request_id, with_logs=False):
            return ("snake", request_id)

        assert await call_with_request_id(status, "app", "rid") == ("snake", "rid")

    @pytest.mark.asyncio
    async def test_positional(self):
        async def result(application, rid, /):
            return ("positional", rid)

        assert await call_with_request_id(result, "app", "rid") == ("positional", "rid")

    @pytest.mark.asyncio
    async def test_all_conventions_fail_raises_last_error(self):
        attempts = []

        async def broken(*args, **kwargs):
            attempts.append(kwargs)
            raise ValueError(f"attempt {len(attempts)}")

        with pytest.raises(ValueError, match="attempt 3"):
            await call_with_request_id(broken, "app", "rid")

        assert len(attempts) == 3
