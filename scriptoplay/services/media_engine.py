"""
Media Engine

An ffmpeg instance with its own working directory. Inputs are fetched into
the working directory and ffmpeg runs with it as cwd, so commands refer to
plain file names.

One operation at a time per instance: ``acquire`` holds the instance lock
for the whole operation and clears the working directory on release.
Concurrent assemblies need separate MediaEngine instances.

Usage:
    engine = MediaEngine()

    async with engine.acquire("project_123"):
        await engine.fetch_file("clip_0.mp4", "https://.../clip.mp4")
        code = await engine.exec(["-i", "clip_0.mp4", "output.mp4"])
        data = await engine.read_file("output.mp4")

    await engine.close()
"""

import asyncio
import gc
import logging
import shutil
import subprocess
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
import psutil

from .generation_errors import AssemblyFailedError

logger = logging.getLogger(__name__)


class MediaEngine:
    """ffmpeg wrapper with a private working directory and a single-operation lock."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        work_root: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        memory_warning_percent: float = 80.0,
        memory_critical_percent: float = 90.0,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.work_root = work_root
        self._transport = transport
        self._memory_warning_percent = memory_warning_percent
        self._memory_critical_percent = memory_critical_percent

        self._work_dir: Optional[Path] = None
        self._lock = asyncio.Lock()
        self._active_job: Optional[str] = None
        self._started_at: Optional[str] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def loaded(self) -> bool:
        return self._work_dir is not None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _load(self) -> Path:
        """Lazy initialisation on first use."""
        if self._work_dir is None:
            if shutil.which(self.ffmpeg_path) is None:
                raise AssemblyFailedError(f"ffmpeg binary not found: {self.ffmpeg_path}")
            if self.work_root:
                Path(self.work_root).mkdir(parents=True, exist_ok=True)
            self._work_dir = Path(tempfile.mkdtemp(prefix="scriptoplay_media_", dir=self.work_root))
            logger.info(f"[MediaEngine] Loaded, working directory {self._work_dir}")
        return self._work_dir

    @asynccontextmanager
    async def acquire(self, job_id: str):
        """
        Hold the engine for one operation.

        Usage:
            async with engine.acquire("job_123"):
                await engine.exec([...])
        """
        if self._lock.locked():
            logger.info(f"[MediaEngine] {job_id} waiting for {self._active_job}")

        async with self._lock:
            await self._check_memory_pressure()
            self._load()
            self._active_job = job_id
            self._started_at = datetime.utcnow().isoformat()
            logger.info(f"[MediaEngine] {job_id} acquired engine")
            try:
                yield self
            finally:
                self._clear_work_dir()
                self._active_job = None
                self._started_at = None
                gc.collect()
                logger.info(f"[MediaEngine] {job_id} released engine")

    async def close(self):
        """Drop the working directory. The engine reloads on next acquire."""
        async with self._lock:
            if self._work_dir is not None:
                shutil.rmtree(self._work_dir, ignore_errors=True)
                logger.info(f"[MediaEngine] Closed {self._work_dir}")
                self._work_dir = None

    def _require_active(self) -> Path:
        if self._work_dir is None or self._active_job is None:
            raise RuntimeError("MediaEngine used outside of acquire()")
        return self._work_dir

    def _clear_work_dir(self):
        if self._work_dir is None:
            return
        for entry in self._work_dir.iterdir():
            if entry.is_dir():
                shutil.rmtree(entry, ignore_errors=True)
            else:
                entry.unlink(missing_ok=True)

    # =========================================================================
    # WORKING STORAGE
    # =========================================================================

    def path_of(self, name: str) -> Path:
        return self._require_active() / name

    async def fetch_file(self, name: str, source: str) -> Path:
        """Copy a URL or local file into working storage."""
        target = self.path_of(name)

        parsed = urlparse(source)
        if parsed.scheme in ("http", "https"):
            async with httpx.AsyncClient(timeout=120.0, transport=self._transport) as client:
                async with client.stream("GET", source, follow_redirects=True) as response:
                    response.raise_for_status()
                    with open(target, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
        else:
            local_path = parsed.path if parsed.scheme == "file" else source
            await asyncio.get_running_loop().run_in_executor(None, shutil.copyfile, local_path, target)

        logger.debug(f"[MediaEngine] Fetched {source} -> {name}")
        return target

    async def write_file(self, name: str, data: bytes) -> Path:
        target = self.path_of(name)
        target.write_bytes(data)
        return target

    async def read_file(self, name: str) -> bytes:
        return self.path_of(name).read_bytes()

    def list_files(self) -> List[str]:
        return sorted(entry.name for entry in self._require_active().iterdir())

    def has_file(self, name: str) -> bool:
        path = self.path_of(name)
        return path.exists() and path.stat().st_size > 0

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def exec(self, args: List[str]) -> int:
        """Run ffmpeg in the working directory and return its exit code."""
        work_dir = self._require_active()
        cmd = [self.ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error", *args]
        logger.debug(f"[MediaEngine] {' '.join(cmd)}")

        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(work_dir),
            stdout=subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            logger.error(f"[MediaEngine] ffmpeg exited {process.returncode}: {stderr.decode(errors='replace')[-1000:]}")

        return process.returncode

    # =========================================================================
    # MEMORY
    # =========================================================================

    async def _check_memory_pressure(self):
        memory_percent = self._get_memory_usage_percent()

        if memory_percent > self._memory_critical_percent:
            logger.warning(f"[MediaEngine] CRITICAL memory pressure ({memory_percent:.1f}%), waiting...")
            gc.collect()
            await asyncio.sleep(5)
        elif memory_percent > self._memory_warning_percent:
            logger.warning(f"[MediaEngine] memory at {memory_percent:.1f}%")

    @staticmethod
    def _get_memory_usage_percent() -> float:
        return psutil.virtual_memory().percent

    def get_status(self) -> Dict[str, Any]:
        """Current engine status for debugging."""
        return {
            "loaded": self.loaded,
            "busy": self.busy,
            "active_job": self._active_job,
            "started_at": self._started_at,
            "memory_percent": self._get_memory_usage_percent(),
        }
