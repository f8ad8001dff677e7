"""
HTTP layer tests with the orchestrator swapped out through dependency overrides.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from scriptoplay.main import app
from scriptoplay.models import ErrorKind, GenerationResult, GenerationStatus, JobHandle, Scene
from scriptoplay.services.generation_errors import (
    AttemptRecord,
    CreditExhaustedError,
    GenerationFailedError,
    GenerationTimeoutError,
)
from scriptoplay.services.orchestrator import GenerationOrchestrator, get_orchestrator


@pytest.fixture
def orchestrator():
    orchestrator = MagicMock()
    orchestrator.generate_image = AsyncMock(return_value="https://fal.media/img.png")
    orchestrator.generate_video = AsyncMock(
        return_value=JobHandle(job_id="req-1", provider_model_id="fal-ai/luma-dream-machine")
    )
    orchestrator.generate_audio = AsyncMock(return_value=b"ID3-audio")
    orchestrator.check_status = AsyncMock(return_value=GenerationResult(
        status=GenerationStatus.IN_PROGRESS, job_id="req-1", logs=[{"message": "Rendering"}],
    ))
    orchestrator.mux_single_clip = AsyncMock(return_value="https://cdn.test/muxed.mp4")
    orchestrator.assemble_video = AsyncMock(return_value="https://cdn.test/final.mp4")
    return orchestrator


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestOrchestratorRoute:

    def test_missing_type(self, client):
        response = client.post("/api/orchestrator", json={"prompt": "x"})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing 'type' parameter"}

    def test_invalid_type(self, client):
        response = client.post("/api/orchestrator", json={"type": "hologram"})
        assert response.status_code == 400

    def test_image(self, client, orchestrator):
        response = client.post("/api/orchestrator", json={"type": "image", "prompt": "owl", "aspectRatio": "16:9"})

        assert response.json() == {"url": "https://fal.media/img.png"}
        orchestrator.generate_image.assert_awaited_once_with({"prompt": "owl", "aspectRatio": "16:9"})

    def test_video(self, client):
        response = client.post("/api/orchestrator", json={"type": "video", "prompt": "owl flies"})

        body = response.json()
        assert body["jobId"] == "req-1"
        assert body["providerModelId"] == "fal-ai/luma-dream-machine"
        assert body["status"] == "queued"

    def test_audio(self, client):
        response = client.post("/api/orchestrator", json={"type": "audio", "model": "openai", "text": "hi"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == b"ID3-audio"

    def test_status(self, client, orchestrator):
        response = client.post("/api/orchestrator", json={
            "type": "status", "requestId": "req-1", "modelId": "fal-ai/luma-dream-machine",
        })

        assert response.json() == {"status": "in_progress", "logs": [{"message": "Rendering"}]}
        orchestrator.check_status.assert_awaited_once_with("req-1", "fal-ai/luma-dream-machine")

    def test_status_requires_request_id(self, client):
        response = client.post("/api/orchestrator", json={"type": "status"})
        assert response.status_code == 400


class TestErrorMapping:

    def test_credit_exhausted(self, client, orchestrator):
        orchestrator.generate_audio.side_effect = CreditExhaustedError("ACEDATA_INSUFFICIENT_CREDITS")

        response = client.post("/api/orchestrator", json={"type": "audio", "model": "suno", "prompt": "jazz"})

        assert response.status_code == 402
        assert response.json() == {"error": "ACEDATA_INSUFFICIENT_CREDITS", "error_kind": "credit_exhausted"}

    def test_timeout(self, client, orchestrator):
        orchestrator.generate_audio.side_effect = GenerationTimeoutError("AceData Suno Timeout")

        response = client.post("/api/orchestrator", json={"type": "audio", "model": "suno", "prompt": "jazz"})

        assert response.status_code == 504

    def test_aggregated_failure(self, client, orchestrator):
        orchestrator.generate_image.side_effect = GenerationFailedError(
            "Image generation failed for both models.",
            attempts=[
                AttemptRecord("a", ErrorKind.CREDIT_EXHAUSTED, "a: INSUFFICIENT CREDITS or API KEY LIMIT"),
                AttemptRecord("b", ErrorKind.GENERATION_FAILED, "b: boom"),
            ],
        )

        response = client.post("/api/orchestrator", json={"type": "image", "prompt": "owl"})

        assert response.status_code == 500
        body = response.json()
        assert body["error_kind"] == "generation_failed"
        assert [a["model"] for a in body["attempts"]] == ["a", "b"]

    def test_invalid_parameters(self, settings, fal_provider):
        app.dependency_overrides[get_orchestrator] = lambda: GenerationOrchestrator(settings=settings, fal=fal_provider)
        try:
            response = TestClient(app).post("/api/orchestrator", json={"type": "image"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 400


class TestMediaRoutes:

    def test_mux_video(self, client, orchestrator):
        response = client.post("/api/mux-video", json={
            "videoUrl": "https://cdn.test/clip.mp4", "audioUrl": "https://cdn.test/voice.mp3",
        })

        assert response.json() == {"url": "https://cdn.test/muxed.mp4"}
        orchestrator.mux_single_clip.assert_awaited_once_with(
            "https://cdn.test/clip.mp4",
            audio_url="https://cdn.test/voice.mp3",
            bgm_url=None,
            project_id="default",
        )

    def test_assemble(self, client, orchestrator):
        response = client.post("/api/assemble", json={
            "projectId": "p1",
            "bgmUrl": "https://cdn.test/bgm.mp3",
            "scenes": [
                {"id": "s1", "production_video": "https://cdn.test/1.mp4", "dialogue": [{"audio_url": "https://cdn.test/1.mp3"}]},
                {"id": "s2", "videoUrl": "https://cdn.test/2.mp4"},
            ],
        })

        assert response.json() == {"url": "https://cdn.test/final.mp4"}
        args, kwargs = orchestrator.assemble_video.await_args
        assert args[0] == "p1"
        assert args[1] == [
            Scene(id="s1", video_url="https://cdn.test/1.mp4", dialogue_audio_url="https://cdn.test/1.mp3"),
            Scene(id="s2", video_url="https://cdn.test/2.mp4"),
        ]
        assert kwargs == {"bgm_url": "https://cdn.test/bgm.mp3"}

    @pytest.mark.parametrize("video_url", ["/etc/passwd", "file:///etc/passwd", "clip.mp4", "https://"])
    def test_mux_rejects_non_http_urls(self, client, orchestrator, video_url):
        response = client.post("/api/mux-video", json={"videoUrl": video_url})

        assert response.status_code == 400
        assert "http(s) URL" in response.json()["error"]
        orchestrator.mux_single_clip.assert_not_awaited()

    def test_mux_rejects_local_music(self, client, orchestrator):
        response = client.post("/api/mux-video", json={
            "videoUrl": "https://cdn.test/clip.mp4", "bgmUrl": "/var/data/bgm.mp3",
        })

        assert response.status_code == 400
        orchestrator.mux_single_clip.assert_not_awaited()

    @pytest.mark.parametrize("payload", [
        {"projectId": "p1", "scenes": [{"id": "s1", "production_video": "/tmp/1.mp4"}]},
        {"projectId": "p1", "scenes": [
            {"id": "s1", "videoUrl": "https://cdn.test/1.mp4", "dialogue": [{"audio_url": "../voice.mp3"}]},
        ]},
        {"projectId": "p1", "scenes": [], "bgmUrl": "file:///srv/bgm.mp3"},
    ])
    def test_assemble_rejects_non_http_urls(self, client, orchestrator, payload):
        response = client.post("/api/assemble", json=payload)

        assert response.status_code == 400
        orchestrator.assemble_video.assert_not_awaited()


class TestMalformedBodies:

    @pytest.mark.parametrize("body", [[{"type": "image"}], "image", 42])
    def test_non_object_body(self, client, orchestrator, body):
        response = client.post("/api/orchestrator", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be a JSON object"}
        orchestrator.generate_image.assert_not_awaited()

    def test_invalid_json(self, client):
        response = client.post(
            "/api/orchestrator", content=b"{not json", headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
