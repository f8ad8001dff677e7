"""
MusicGen Provider - Meta MusicGen on Replicate.

Synchronous from the caller's point of view: the prediction is created with
``Prefer: wait`` and, if Replicate hands it back before it finishes, polled
until it does or the deadline passes.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from ..generation_errors import (
    ArtifactExtractionError,
    CreditExhaustedError,
    GenerationFailedError,
    GenerationTimeoutError,
)
from .base_provider import BaseMusicProvider, MusicProviderType


MUSICGEN_VERSION = "meta/musicgen:7a76a8258b23fae65c5a22debb8841d1d7e816b75c2f24218cd2bd8573787906"
DEFAULT_MUSIC_DURATION = 30


class MusicGenProvider(BaseMusicProvider):
    """Replicate MusicGen (large)"""

    def __init__(
        self,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 300.0,
        poll_interval: float = 2.0,
    ):
        super().__init__(MusicProviderType.MUSICGEN, api_key, transport)
        self.base_url = "https://api.replicate.com/v1"
        self.timeout = timeout
        self.poll_interval = poll_interval

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    async def generate(self, prompt: str, duration: Optional[int] = None) -> bytes:
        if not self.is_available():
            raise GenerationFailedError("Replicate API token missing")

        self._log(f"Generating {duration or DEFAULT_MUSIC_DURATION}s track")

        async with self._http_client() as client:
            response = await client.post(
                f"{self.base_url}/predictions",
                headers=self._get_headers(),
                json={
                    "version": MUSICGEN_VERSION.split(":")[-1],
                    "input": {
                        "prompt": prompt,
                        "model_version": "large",
                        "duration": duration or DEFAULT_MUSIC_DURATION,
                    },
                },
            )

        if response.status_code not in (200, 201):
            self._raise_for_create(response)

        prediction = response.json()
        if prediction.get("status") not in ("succeeded", "failed", "canceled"):
            prediction = await self._poll_prediction(prediction["id"])

        if prediction.get("status") != "succeeded":
            error = prediction.get("error") or prediction.get("status")
            raise GenerationFailedError(f"MusicGen Failed: {error}")

        audio_url = self._output_url(prediction.get("output"))
        if not audio_url:
            raise ArtifactExtractionError(f"MusicGen returned no audio URL: {prediction.get('output')!r}")

        return await self._download(audio_url)

    def _raise_for_create(self, response: httpx.Response) -> None:
        text = response.text
        self._log(f"Prediction create failed: {response.status_code} {text[:300]}")
        if response.status_code == 402 or "payment" in text.lower():
            raise CreditExhaustedError("REPLICATE_INSUFFICIENT_CREDITS")
        raise GenerationFailedError(f"MusicGen Failed: {response.status_code} {text[:300]}")

    @staticmethod
    def _output_url(output: Any) -> Optional[str]:
        if isinstance(output, str):
            return output
        if isinstance(output, list) and output and isinstance(output[0], str):
            return output[0]
        if isinstance(output, dict):
            return output.get("audio") or output.get("url")
        return None

    async def _poll_prediction(self, prediction_id: str) -> Dict[str, Any]:
        """Poll prediction until it reaches a terminal state or times out."""
        start_time = time.monotonic()

        async with self._http_client(timeout=30.0) as client:
            while time.monotonic() - start_time < self.timeout:
                response = await client.get(
                    f"{self.base_url}/predictions/{prediction_id}",
                    headers=self._get_headers(),
                )

                if response.status_code == 200:
                    prediction = response.json()
                    status = prediction.get("status")
                    self._log(f"Status: {status}")
                    if status in ("succeeded", "failed", "canceled"):
                        return prediction
                else:
                    self._log(f"Poll failed: {response.status_code}")

                await asyncio.sleep(self.poll_interval)

        raise GenerationTimeoutError(f"MusicGen prediction {prediction_id} timed out")
