"""
Base Music Provider

Abstract base class for music generation providers. Every provider returns
the finished track as bytes, whether the upstream API is synchronous or
job based.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import httpx

from ..generation_errors import GenerationFailedError

logger = logging.getLogger(__name__)


class MusicProviderType(str, Enum):
    """Available music providers"""
    SUNO = "suno"          # AceData Suno, job based
    MUSICGEN = "musicgen"  # Replicate MusicGen


class BaseMusicProvider(ABC):
    """Abstract base class for music providers"""

    def __init__(
        self,
        provider_type: MusicProviderType,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider_type = provider_type
        self.api_key = api_key
        self._transport = transport

    @property
    def name(self) -> str:
        return self.provider_type.value

    def is_available(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def generate(self, prompt: str, duration: Optional[int] = None) -> bytes:
        """Generate a track for the prompt"""
        pass

    def _http_client(self, timeout: float = 60.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _download(self, url: str) -> bytes:
        """Download the finished track."""
        async with self._http_client(timeout=120.0) as client:
            response = await client.get(url, follow_redirects=True)

        if response.status_code != 200:
            raise GenerationFailedError(
                f"{self.name}: failed to download generated audio ({response.status_code})"
            )

        self._log(f"Downloaded {len(response.content)} bytes from {url}")
        return response.content

    def _log(self, message: str):
        logger.info(f"[MUSIC-{self.name.upper()}] {message}")
