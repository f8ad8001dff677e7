"""
Generation Orchestrator

The single entry point the application calls for generation:

    generate_image  - fal image model with one fallback model
    generate_video  - enqueue a fal video job, returns a JobHandle
    check_status    - one poll of a video job
    generate_audio  - speech (OpenAI / ElevenLabs) or music (Suno / MusicGen) bytes
    assemble_video  - multi-scene render with ducked music
    mux_single_clip - voice/music over one clip, degrades to the original clip

Usage:
    from scriptoplay.services.orchestrator import get_orchestrator

    orchestrator = get_orchestrator()
    url = await orchestrator.generate_image({"prompt": "a fox", "aspectRatio": "16:9"})
    handle = await orchestrator.generate_video({"prompt": "the fox runs"})
    result = await orchestrator.check_status(handle.job_id, handle.provider_model_id)
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel

from ..config import ScriptoplaySettings, get_settings
from ..models import (
    AudioParams,
    GenerationResult,
    GenerationStatus,
    ImageParams,
    JobHandle,
    Scene,
    VideoParams,
)
from ..providers.fal_provider import (
    DEFAULT_VIDEO_MODEL,
    IMAGE_FALLBACK_MODEL,
    IMAGE_PRIMARY_MODEL,
    FalProvider,
)
from ..providers.response_shapes import parse_image_response
from ..shared.object_storage import get_storage_client
from .fallback_policy import FallbackOutcome, FallbackPolicy
from .generation_errors import GenerationFailedError
from .job_poller import VideoJobPoller
from .media_engine import MediaEngine
from .music_providers import BaseMusicProvider, MusicGenProvider, MusicProviderType, SunoProvider
from .tts_providers import ElevenLabsProvider, OpenAIProvider, SpeechProviderService, SpeechProviderType
from .video_assembly_service import ProgressCallback, VideoAssemblyService
from .video_router import select_video_model

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)

SPEECH_MODELS = {SpeechProviderType.OPENAI.value, SpeechProviderType.ELEVENLABS.value, "auto"}


def _coerce(model: Type[P], params: Union[P, Mapping[str, Any]]) -> P:
    if isinstance(params, model):
        return params
    return model.model_validate(dict(params))


class GenerationOrchestrator:
    """Unified facade over image, video, audio generation and media assembly."""

    def __init__(
        self,
        settings: Optional[ScriptoplaySettings] = None,
        fal: Optional[FalProvider] = None,
        speech: Optional[SpeechProviderService] = None,
        music: Optional[Dict[MusicProviderType, BaseMusicProvider]] = None,
        assembly: Optional[VideoAssemblyService] = None,
        storage: Any = None,
    ):
        self.settings = settings or get_settings()
        credentials = self.settings.credentials
        polling = self.settings.polling

        self.fal = fal or FalProvider(credentials.fal_key)
        self.image_policy = FallbackPolicy("Image generation")
        self.video_jobs = VideoJobPoller(self.fal, webhook_url=credentials.fal_webhook_url)

        self.speech = speech or SpeechProviderService([
            OpenAIProvider(credentials.openai_api_key),
            ElevenLabsProvider(credentials.elevenlabs_api_key),
        ])

        self.music = music or {
            MusicProviderType.SUNO: SunoProvider(
                credentials.acedata_api_key,
                poll_interval=polling.music_poll_interval,
                max_attempts=polling.music_poll_attempts,
            ),
            MusicProviderType.MUSICGEN: MusicGenProvider(
                credentials.replicate_api_token,
                timeout=polling.replicate_timeout,
                poll_interval=polling.replicate_poll_interval,
            ),
        }

        self._assembly = assembly
        self._storage = storage

    @property
    def assembly(self) -> VideoAssemblyService:
        """Assembly service, built on first use (it owns the media engine)."""
        if self._assembly is None:
            engine_settings = self.settings.engine
            storage = self._storage
            if storage is None:
                storage = get_storage_client()

            engine = MediaEngine(
                ffmpeg_path=engine_settings.ffmpeg_path,
                work_root=engine_settings.work_dir,
                memory_warning_percent=engine_settings.memory_warning_percent,
                memory_critical_percent=engine_settings.memory_critical_percent,
            )
            self._assembly = VideoAssemblyService(
                engine,
                storage,
                mix=self.settings.mix,
                ffprobe_path=engine_settings.ffprobe_path,
            )
        return self._assembly

    # =========================================================================
    # IMAGE
    # =========================================================================

    async def generate_image(self, params: Union[ImageParams, Mapping[str, Any]]) -> str:
        """Generate an image and return its URL."""
        outcome = await self.generate_image_outcome(params)
        return outcome.url

    async def generate_image_outcome(self, params: Union[ImageParams, Mapping[str, Any]]) -> FallbackOutcome:
        """Like generate_image, keeping the model used and any failed attempt."""
        image_params = _coerce(ImageParams, params)
        request = image_params.to_request()

        primary = request.model_hint or IMAGE_PRIMARY_MODEL
        fallback = IMAGE_FALLBACK_MODEL if primary != IMAGE_FALLBACK_MODEL else None

        async def call(model_id: str) -> Any:
            payload = self.fal.build_image_request(request, model_id)
            return await self.fal.generate_image(model_id, payload)

        outcome = await self.image_policy.run(primary, fallback, call, parse_image_response)
        if outcome.used_fallback:
            logger.info(f"[Orchestrator] Image generated by fallback {outcome.model_id}")
        return outcome

    # =========================================================================
    # VIDEO
    # =========================================================================

    async def generate_video(self, params: Union[VideoParams, Mapping[str, Any]]) -> JobHandle:
        """Enqueue a video job. Poll it with check_status."""
        video_params = _coerce(VideoParams, params)

        if video_params.model:
            model_id = video_params.model
        elif video_params.preference or video_params.tags or (video_params.image_url and video_params.audio_url):
            model_id = select_video_model(
                image_url=video_params.image_url,
                audio_url=video_params.audio_url,
                tags=video_params.tags,
                preference=video_params.preference,
            )
        else:
            model_id = DEFAULT_VIDEO_MODEL

        handle = await self.video_jobs.submit(video_params.to_request(model_id))
        logger.info(f"[Orchestrator] Video queued: {handle.job_id} on {handle.provider_model_id}")
        return handle

    async def check_status(self, job_id: str, provider_model_id: Optional[str] = None) -> GenerationResult:
        """One status poll for a video job."""
        handle = JobHandle(job_id=job_id, provider_model_id=provider_model_id or DEFAULT_VIDEO_MODEL)
        return await self.video_jobs.poll_status(handle)

    async def wait_for_video(self, handle: JobHandle, *, interval: float, max_attempts: int) -> GenerationResult:
        """
        Poll until the job is terminal or the caller's budget is spent.

        The bounds are the caller's policy; when they run out the last
        non-terminal result is returned and the job is left running.
        """
        result = GenerationResult(
            status=GenerationStatus.QUEUED,
            job_id=handle.job_id,
            provider_model_id=handle.provider_model_id,
        )
        for attempt in range(1, max_attempts + 1):
            await asyncio.sleep(interval)
            result = await self.video_jobs.poll_status(handle)
            logger.info(f"[Orchestrator] Video poll {attempt}/{max_attempts}: {result.status.value}")
            if result.status.is_terminal:
                return result
        return result

    # =========================================================================
    # AUDIO
    # =========================================================================

    async def generate_audio(self, params: Union[AudioParams, Mapping[str, Any]]) -> bytes:
        """Generate speech or music and return the audio bytes."""
        audio_params = _coerce(AudioParams, params)
        model = audio_params.model.lower()

        if model in SPEECH_MODELS:
            return await self.speech.synthesize(
                text=audio_params.content,
                voice=audio_params.voice,
                speed=audio_params.speed,
                provider=None if model == "auto" else model,
            )

        try:
            provider_type = MusicProviderType(model)
        except ValueError:
            raise GenerationFailedError(f"Unsupported audio model: {audio_params.model}") from None

        provider = self.music.get(provider_type)
        if provider is None:
            raise GenerationFailedError(f"Music provider {model} is not configured")
        if not audio_params.content:
            raise GenerationFailedError("Music generation requires a prompt")

        logger.info(f"[Orchestrator] Generating music via {model}")
        return await provider.generate(audio_params.content, audio_params.duration)

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    async def assemble_video(
        self,
        project_id: str,
        scenes: Sequence[Union[Scene, dict]],
        bgm_url: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        return await self.assembly.assemble_video(project_id, scenes, bgm_url, on_progress)

    async def mux_single_clip(
        self,
        video_url: str,
        audio_url: Optional[str] = None,
        bgm_url: Optional[str] = None,
        project_id: str = "default",
    ) -> str:
        return await self.assembly.mux_single_clip(video_url, audio_url, bgm_url, project_id)


# Global singleton
_orchestrator: Optional[GenerationOrchestrator] = None


def get_orchestrator() -> GenerationOrchestrator:
    """Get or create the process-wide orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = GenerationOrchestrator()
    return _orchestrator
