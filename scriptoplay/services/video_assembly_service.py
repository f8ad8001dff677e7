"""
Video Assembly Service

Turns per-scene clips into one finished video.

Multi-scene assembly:
    1. Fetch each scene clip and its dialogue (or synthesise silence)
    2. Normalise all audio to 44.1kHz stereo, padded/trimmed to the clip,
       and all video to one frame size
    3. Concatenate (video, audio) pairs in scene order
    4. With background music: duck it under the dialogue via sidechain
       compression, then mix
    5. Encode H.264/AAC, verify the output exists, upload, return the URL
   Any failure raises AssemblyFailedError; there is no partial output.

Single-clip mux:
    Voice and/or music laid over one pre-rendered clip with the video stream
    copied. Output is capped to the probed clip duration. Any failure returns
    the original clip URL, a silent video being an acceptable result.
"""

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse

from ..config import MixSettings
from ..models import AssemblyPlan, FinalArtifact, Scene
from .generation_errors import AssemblyFailedError, GenerationError
from .media_engine import MediaEngine

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], Union[None, Awaitable[None]]]

ASSEMBLY_OUTPUT = "output.mp4"
MUX_OUTPUT = "muxed.mp4"


@dataclass
class SceneInput:
    """A fetched scene ready for the filter graph."""
    index: int
    scene_id: str
    video_name: str
    audio_name: Optional[str]   # None -> silent placeholder
    duration: float


def _num(value: float) -> str:
    return f"{value:g}"


def _media_name(prefix: str, source: str, default_ext: str) -> str:
    suffix = PurePosixPath(urlparse(source).path).suffix.lower()
    if not suffix or len(suffix) > 5:
        suffix = default_ext
    return f"{prefix}{suffix}"


async def probe_duration(source: str, ffprobe_path: str = "ffprobe") -> Optional[float]:
    """
    Read a media duration with ffprobe, without touching the media engine.

    Returns None when ffprobe is missing or the source cannot be read.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_entries", "format=duration",
            source,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, _ = await process.communicate()
    except OSError as e:
        logger.warning(f"[Assembly] ffprobe unavailable: {e}")
        return None

    if process.returncode != 0:
        return None

    try:
        payload = json.loads(stdout.decode() or "{}")
        duration = float(payload.get("format", {}).get("duration"))
    except (TypeError, ValueError):
        return None

    return duration if duration > 0 else None


async def read_video_size(source: str, ffprobe_path: str = "ffprobe") -> Optional[Tuple[int, int]]:
    """Width and height of the first video stream, or None when unreadable."""
    try:
        process = await asyncio.create_subprocess_exec(
            ffprobe_path,
            "-v", "error",
            "-select_streams", "v:0",
            "-print_format", "json",
            "-show_entries", "stream=width,height",
            source,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, _ = await process.communicate()
    except OSError as e:
        logger.warning(f"[Assembly] ffprobe unavailable: {e}")
        return None

    if process.returncode != 0:
        return None

    try:
        streams = json.loads(stdout.decode() or "{}").get("streams") or [{}]
        width, height = int(streams[0]["width"]), int(streams[0]["height"])
    except (KeyError, TypeError, ValueError):
        return None

    return (width, height) if width > 0 and height > 0 else None


# =============================================================================
# FILTER GRAPHS
# =============================================================================

def _normalize_audio(mix: MixSettings) -> str:
    return f"aformat=sample_rates={mix.sample_rate}:channel_layouts={mix.channel_layout}"


def build_assembly_command(
    scenes: Sequence[SceneInput],
    bgm_name: Optional[str],
    mix: MixSettings,
    output_name: str = ASSEMBLY_OUTPUT,
    resolution: Optional[Tuple[int, int]] = None,
) -> List[str]:
    """
    ffmpeg arguments for concatenating scenes and mixing ducked music.

    concat needs every scene at one frame size, so clips are scaled and padded
    to ``mix.assembly_resolution`` when set, else to ``resolution``.
    """
    args: List[str] = []
    filters: List[str] = []
    concat_inputs = ""
    input_index = 0

    normalize = _normalize_audio(mix)
    if mix.assembly_resolution:
        resolution = tuple(mix.assembly_resolution.lower().split("x"))

    for scene in scenes:
        args += ["-i", scene.video_name]
        video_index = input_index
        input_index += 1

        if scene.audio_name:
            args += ["-i", scene.audio_name]
        else:
            args += [
                "-f", "lavfi",
                "-t", f"{scene.duration:.3f}",
                "-i", f"anullsrc=channel_layout={mix.channel_layout}:sample_rate={mix.sample_rate}",
            ]
        audio_index = input_index
        input_index += 1

        if resolution:
            width, height = resolution
            video_chain = (
                f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
                f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,fps={mix.assembly_fps},setsar=1"
            )
        else:
            video_chain = "setsar=1"

        i = scene.index
        filters.append(f"[{video_index}:v]{video_chain},setpts=PTS-STARTPTS[v_{i}]")
        filters.append(
            f"[{audio_index}:a]{normalize},apad,atrim=0:{scene.duration:.3f},"
            f"asetpts=PTS-STARTPTS[a_norm_{i}]"
        )
        concat_inputs += f"[v_{i}][a_norm_{i}]"

    filters.append(f"{concat_inputs}concat=n={len(scenes)}:v=1:a=1[v_out][a_main]")

    if bgm_name:
        args += ["-i", bgm_name]
        ducking = mix.ducking
        filters.append(f"[{input_index}:a]{normalize}[bgm_norm]")
        filters.append("[a_main]asplit=2[voice_main][sc]")
        filters.append(
            f"[bgm_norm][sc]sidechaincompress=threshold={_num(ducking.threshold)}"
            f":ratio={_num(ducking.ratio)}:attack={_num(ducking.attack_ms)}"
            f":release={_num(ducking.release_ms)}[bgm_ducked]"
        )
        filters.append("[voice_main][bgm_ducked]amix=inputs=2:duration=first[audio_final]")
    else:
        filters.append("[a_main]anull[audio_final]")

    args += [
        "-filter_complex", ";".join(filters),
        "-map", "[v_out]",
        "-map", "[audio_final]",
        "-c:v", "libx264",
        "-preset", mix.video_preset,
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-b:a", mix.audio_bitrate,
        "-movflags", "+faststart",
        output_name,
    ]
    return args


def build_mux_command(
    video_name: str,
    voice_name: Optional[str],
    bgm_name: Optional[str],
    duration: float,
    mix: MixSettings,
    output_name: str = MUX_OUTPUT,
) -> List[str]:
    """ffmpeg arguments for laying voice and/or music over one clip."""
    if not voice_name and not bgm_name:
        raise ValueError("mux requires at least one audio input")

    args = ["-i", video_name]
    if voice_name:
        args += ["-i", voice_name]
    if bgm_name:
        args += ["-i", bgm_name]

    normalize = _normalize_audio(mix)

    if voice_name and bgm_name:
        args += [
            "-filter_complex",
            f"[1:a]{normalize}[voice];"
            f"[2:a]{normalize},volume={_num(mix.mux_bgm_volume)}[bgm];"
            f"[voice][bgm]amix=inputs=2:duration=longest[aout]",
            "-map", "0:v:0",
            "-map", "[aout]",
        ]
    elif voice_name:
        args += ["-map", "0:v:0", "-map", "1:a:0"]
    else:
        args += [
            "-filter_complex", f"[1:a]{normalize},volume={_num(mix.mux_bgm_only_volume)}[aout]",
            "-map", "0:v:0",
            "-map", "[aout]",
        ]

    args += [
        "-c:v", "copy",
        "-c:a", "aac",
        "-b:a", mix.audio_bitrate,
        "-t", f"{duration:.3f}",
        output_name,
    ]
    return args


# =============================================================================
# SERVICE
# =============================================================================

class VideoAssemblyService:
    """Multi-scene assembly and single-clip muxing on one media engine."""

    def __init__(
        self,
        engine: MediaEngine,
        storage: Any,
        mix: Optional[MixSettings] = None,
        ffprobe_path: str = "ffprobe",
    ):
        """
        Args:
            engine: Media engine used for every render
            storage: Object with ``upload_artifact(key, data, content_type) -> url``
            mix: Normalisation, ducking and attenuation settings
            ffprobe_path: ffprobe binary for duration probes
        """
        self.engine = engine
        self.storage = storage
        self.mix = mix or MixSettings()
        self.ffprobe_path = ffprobe_path

    async def assemble_video(
        self,
        project_id: str,
        scenes: Sequence[Union[Scene, dict]],
        bgm_url: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Assemble scenes into one video and return its public URL."""
        plan = AssemblyPlan(
            scenes=[s if isinstance(s, Scene) else Scene.from_project_scene(s) for s in scenes],
            background_music_url=bgm_url,
        )
        artifact = await self.assemble(plan, project_id, on_progress)
        return artifact.url

    async def assemble(
        self,
        plan: AssemblyPlan,
        project_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> FinalArtifact:
        scenes = plan.playable_scenes()
        if not scenes:
            raise AssemblyFailedError("No scenes with video to assemble")

        logger.info(f"[Assembly] Project {project_id}: {len(scenes)} scenes, bgm={bool(plan.background_music_url)}")
        await self._report(on_progress, "Loading media engine...", 0.0)

        async with self.engine.acquire(f"assembly:{project_id}"):
            inputs: List[SceneInput] = []
            for i, scene in enumerate(scenes):
                await self._report(on_progress, f"Fetching scene {i + 1}/{len(scenes)}...", 0.05 + 0.45 * i / len(scenes))
                inputs.append(await self._fetch_scene(i, scene))

            bgm_name = None
            if plan.background_music_url:
                await self._report(on_progress, "Fetching background music...", 0.5)
                bgm_name = _media_name("bgm", plan.background_music_url, ".mp3")
                await self._fetch(bgm_name, plan.background_music_url)

            await self._report(on_progress, "Rendering final video...", 0.55)
            resolution = await self._target_resolution(inputs[0])
            args = build_assembly_command(inputs, bgm_name, self.mix, ASSEMBLY_OUTPUT, resolution=resolution)
            return_code = await self.engine.exec(args)
            if return_code != 0:
                raise AssemblyFailedError(f"ffmpeg assembly exited with code {return_code}")

            if ASSEMBLY_OUTPUT not in self.engine.list_files() or not self.engine.has_file(ASSEMBLY_OUTPUT):
                raise AssemblyFailedError("Rendered output not found in engine working storage")

            data = await self.engine.read_file(ASSEMBLY_OUTPUT)

        await self._report(on_progress, "Uploading final render...", 0.9)
        key = f"projects/{project_id}/final_render_{int(time.time() * 1000)}.mp4"
        try:
            url = await self.storage.upload_artifact(key, data, "video/mp4")
        except Exception as e:
            raise AssemblyFailedError(f"Upload of final render failed: {e}") from e

        await self._report(on_progress, "Done", 1.0)
        logger.info(f"[Assembly] Project {project_id} rendered: {url}")
        return FinalArtifact(url=url)

    async def mux_single_clip(
        self,
        video_url: str,
        audio_url: Optional[str] = None,
        bgm_url: Optional[str] = None,
        project_id: str = "default",
    ) -> str:
        """Overlay voice and/or music on one clip. Returns the original URL on any failure."""
        if not audio_url and not bgm_url:
            return video_url

        try:
            duration = await probe_duration(video_url, self.ffprobe_path)
            if duration is None:
                duration = self.mix.probe_fallback_seconds
                logger.warning(f"[Assembly] Could not probe {video_url}, capping mux at {duration}s")

            async with self.engine.acquire(f"mux:{project_id}"):
                video_name = _media_name("clip", video_url, ".mp4")
                await self._fetch(video_name, video_url)

                voice_name = None
                if audio_url:
                    voice_name = _media_name("voice", audio_url, ".mp3")
                    await self._fetch(voice_name, audio_url)

                bgm_name = None
                if bgm_url:
                    bgm_name = _media_name("bgm", bgm_url, ".mp3")
                    await self._fetch(bgm_name, bgm_url)

                args = build_mux_command(video_name, voice_name, bgm_name, duration, self.mix, MUX_OUTPUT)
                return_code = await self.engine.exec(args)
                if return_code != 0 or not self.engine.has_file(MUX_OUTPUT):
                    raise AssemblyFailedError(f"ffmpeg mux exited with code {return_code}")

                data = await self.engine.read_file(MUX_OUTPUT)

            key = f"projects/{project_id}/hobbyist_muxed_{int(time.time() * 1000)}.mp4"
            url = await self.storage.upload_artifact(key, data, "video/mp4")
            logger.info(f"[Assembly] Muxed clip for {project_id}: {url}")
            return url

        except Exception as e:
            logger.error(f"[Assembly] Mux failed, returning original video: {e}")
            return video_url

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _fetch_scene(self, index: int, scene: Scene) -> SceneInput:
        video_name = _media_name(f"scene_{index}_video", scene.video_url, ".mp4")
        await self._fetch(video_name, scene.video_url)

        audio_name = None
        if scene.dialogue_audio_url:
            audio_name = _media_name(f"scene_{index}_dialogue", scene.dialogue_audio_url, ".mp3")
            await self._fetch(audio_name, scene.dialogue_audio_url)

        duration = await probe_duration(str(self.engine.path_of(video_name)), self.ffprobe_path)
        if duration is None:
            duration = self.mix.probe_fallback_seconds
            logger.warning(f"[Assembly] Could not probe scene {scene.id}, assuming {duration}s")

        return SceneInput(
            index=index,
            scene_id=scene.id,
            video_name=video_name,
            audio_name=audio_name,
            duration=duration,
        )

    async def _target_resolution(self, first: SceneInput) -> Optional[Tuple[int, int]]:
        """Frame size of the first scene, used when no assembly resolution is configured."""
        if self.mix.assembly_resolution:
            return None

        size = await read_video_size(str(self.engine.path_of(first.video_name)), self.ffprobe_path)
        if size is None:
            logger.warning(f"[Assembly] Could not read the frame size of scene {first.scene_id}, scenes are not rescaled")
        return size

    async def _fetch(self, name: str, source: str):
        try:
            await self.engine.fetch_file(name, source)
        except GenerationError:
            raise
        except Exception as e:
            raise AssemblyFailedError(f"Failed to fetch {source}: {e}") from e

    @staticmethod
    async def _report(on_progress: Optional[ProgressCallback], message: str, ratio: float):
        if on_progress is None:
            return
        result = on_progress(message, ratio)
        if inspect.isawaitable(result):
            await result
