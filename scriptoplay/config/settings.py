"""
Scriptoplay Configuration Settings

Provider credentials, media mixing parameters and polling budgets.
Everything is read from environment variables so deployments only change env.

Environment Variables:
    FAL_KEY: fal.ai API key (image and video queue)
    FAL_WEBHOOK_URL: Optional webhook passed on video submission
    OPENAI_API_KEY: OpenAI key for text-to-speech
    ELEVENLABS_API_KEY: ElevenLabs key for text-to-speech
    ACEDATA_API_KEY: AceData key for Suno music generation
    REPLICATE_API_TOKEN: Replicate token for MusicGen
    FFMPEG_PATH / FFPROBE_PATH: Media binaries (default: from PATH)
    MEDIA_WORK_DIR: Parent directory for engine working directories
    SCRIPTOPLAY_*: Mixing and polling tunables (see MixSettings / PollSettings)
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    return int(value) if value else default


@dataclass
class ProviderCredentials:
    """API keys for the upstream generation providers."""
    fal_key: str = ""
    fal_webhook_url: Optional[str] = None
    openai_api_key: str = ""
    elevenlabs_api_key: str = ""
    acedata_api_key: str = ""
    replicate_api_token: str = ""


@dataclass
class DuckingSettings:
    """Sidechain compressor applied to background music under dialogue."""
    threshold: float = 0.03      # Linear level at which the music starts ducking
    ratio: float = 10.0
    attack_ms: float = 50.0
    release_ms: float = 500.0


@dataclass
class MixSettings:
    """Audio normalisation and single-clip mux levels."""
    sample_rate: int = 44100
    channel_layout: str = "stereo"
    mux_bgm_volume: float = 0.25       # Music under dialogue
    mux_bgm_only_volume: float = 0.35  # Music alone
    audio_bitrate: str = "192k"
    video_preset: str = "veryfast"
    probe_fallback_seconds: float = 10.0
    # "WIDTHxHEIGHT" to normalise every scene before concat, empty keeps sources as-is
    assembly_resolution: str = ""
    assembly_fps: int = 24
    ducking: DuckingSettings = field(default_factory=DuckingSettings)


@dataclass
class PollSettings:
    """Budgets for job-based providers."""
    music_poll_interval: float = 4.0
    music_poll_attempts: int = 75       # ~5 minutes at 4s
    replicate_timeout: float = 300.0
    replicate_poll_interval: float = 2.0


@dataclass
class EngineSettings:
    """Media engine binaries and working storage."""
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    work_dir: Optional[str] = None
    memory_warning_percent: float = 80.0
    memory_critical_percent: float = 90.0


@dataclass
class ScriptoplaySettings:
    """Complete configuration for the generation core."""
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)
    mix: MixSettings = field(default_factory=MixSettings)
    polling: PollSettings = field(default_factory=PollSettings)
    engine: EngineSettings = field(default_factory=EngineSettings)


def load_settings() -> ScriptoplaySettings:
    """Load settings from environment variables."""
    credentials = ProviderCredentials(
        fal_key=os.getenv("FAL_KEY", ""),
        fal_webhook_url=os.getenv("FAL_WEBHOOK_URL") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY", ""),
        acedata_api_key=os.getenv("ACEDATA_API_KEY", ""),
        replicate_api_token=os.getenv("REPLICATE_API_TOKEN", os.getenv("REPLICATE_API_KEY", "")),
    )

    ducking = DuckingSettings(
        threshold=_env_float("SCRIPTOPLAY_DUCK_THRESHOLD", 0.03),
        ratio=_env_float("SCRIPTOPLAY_DUCK_RATIO", 10.0),
        attack_ms=_env_float("SCRIPTOPLAY_DUCK_ATTACK_MS", 50.0),
        release_ms=_env_float("SCRIPTOPLAY_DUCK_RELEASE_MS", 500.0),
    )

    mix = MixSettings(
        sample_rate=_env_int("SCRIPTOPLAY_SAMPLE_RATE", 44100),
        mux_bgm_volume=_env_float("SCRIPTOPLAY_MUX_BGM_VOLUME", 0.25),
        mux_bgm_only_volume=_env_float("SCRIPTOPLAY_MUX_BGM_ONLY_VOLUME", 0.35),
        probe_fallback_seconds=_env_float("SCRIPTOPLAY_PROBE_FALLBACK_SECONDS", 10.0),
        assembly_resolution=os.getenv("SCRIPTOPLAY_ASSEMBLY_RESOLUTION", "").strip(),
        assembly_fps=_env_int("SCRIPTOPLAY_ASSEMBLY_FPS", 24),
        ducking=ducking,
    )

    polling = PollSettings(
        music_poll_interval=_env_float("SCRIPTOPLAY_MUSIC_POLL_INTERVAL", 4.0),
        music_poll_attempts=_env_int("SCRIPTOPLAY_MUSIC_POLL_ATTEMPTS", 75),
    )

    engine = EngineSettings(
        ffmpeg_path=os.getenv("FFMPEG_PATH", "ffmpeg"),
        ffprobe_path=os.getenv("FFPROBE_PATH", "ffprobe"),
        work_dir=os.getenv("MEDIA_WORK_DIR") or None,
    )

    return ScriptoplaySettings(
        credentials=credentials,
        mix=mix,
        polling=polling,
        engine=engine,
    )


@lru_cache()
def get_settings() -> ScriptoplaySettings:
    """Get the process-wide settings instance."""
    return load_settings()
