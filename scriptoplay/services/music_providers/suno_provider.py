"""
Suno Provider - Suno music through the AceData API.

Job based: a generation task is created, then polled on a fixed interval up
to a hard attempt ceiling. Exhausting the budget raises a timeout, which is
distinct from the task reporting failure.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from ...providers.response_shapes import parse_audio_response
from ..generation_errors import (
    ArtifactExtractionError,
    CreditExhaustedError,
    GenerationFailedError,
    GenerationTimeoutError,
)
from .base_provider import BaseMusicProvider, MusicProviderType


SUCCEEDED_STATUSES = ("succeeded", "success")
FAILED_STATUSES = ("failed", "error")


class SunoProvider(BaseMusicProvider):
    """AceData Suno provider"""

    def __init__(
        self,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        poll_interval: float = 4.0,
        max_attempts: int = 75,
        model: str = "chill",
    ):
        super().__init__(MusicProviderType.SUNO, api_key, transport)
        self.base_url = "https://api.acedata.cloud/suno/audios"
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.model = model

    def _get_headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "authorization": f"Bearer {self.api_key}",
            "content-type": "application/json",
        }

    async def generate(self, prompt: str, duration: Optional[int] = None) -> bytes:
        if not self.is_available():
            raise GenerationFailedError("AceData API Key missing")

        task_id = await self._create_task(prompt)
        self._log(f"Task {task_id} created, polling every {self.poll_interval}s")
        audio_url = await self._wait_for_audio(task_id)
        return await self._download(audio_url)

    async def _create_task(self, prompt: str) -> str:
        async with self._http_client() as client:
            response = await client.post(
                self.base_url,
                headers=self._get_headers(),
                json={"action": "generate", "prompt": prompt, "model": self.model},
            )

        if response.status_code >= 400:
            self._raise_for_create(response)

        data = response.json()
        task_id = data.get("task_id") or (data.get("data") or {}).get("task_id")
        if not task_id:
            self._log(f"Unexpected create response: {data}")
            raise GenerationFailedError("No task_id returned from AceData")
        return task_id

    def _raise_for_create(self, response: httpx.Response) -> None:
        text = response.text
        try:
            error = (response.json() or {}).get("error") or {}
        except ValueError:
            error = {}

        code = error.get("code") if isinstance(error, dict) else None
        if code == "used_up" or "balance is not sufficient" in text:
            raise CreditExhaustedError("ACEDATA_INSUFFICIENT_CREDITS")
        raise GenerationFailedError(f"AceData Suno Creation Failed: {text[:500]}")

    async def _wait_for_audio(self, task_id: str) -> str:
        """Poll the task until it yields an audio URL."""
        succeeded_without_url = False

        async with self._http_client(timeout=30.0) as client:
            for attempt in range(1, self.max_attempts + 1):
                await asyncio.sleep(self.poll_interval)

                response = await client.get(f"{self.base_url}/{task_id}", headers=self._get_headers())
                if response.status_code != 200:
                    continue

                try:
                    payload = response.json()
                except ValueError:
                    self._log(f"Unreadable status response (attempt {attempt}/{self.max_attempts}): {response.text[:200]}")
                    continue

                status = self._status_of(payload)
                self._log(f"Status: {status} (attempt {attempt}/{self.max_attempts})")

                if status in SUCCEEDED_STATUSES:
                    audio_url = parse_audio_response(payload)
                    if audio_url:
                        return audio_url
                    succeeded_without_url = True

                if status in FAILED_STATUSES:
                    raise GenerationFailedError(f"AceData Suno Task Failed: {payload}")

        if succeeded_without_url:
            raise ArtifactExtractionError(f"AceData Suno task {task_id} succeeded without an audio URL")
        raise GenerationTimeoutError(
            f"AceData Suno Timeout (no result after {self.max_attempts} attempts)"
        )

    @staticmethod
    def _status_of(payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        status = payload.get("status")
        if status is None and isinstance(payload.get("data"), dict):
            status = payload["data"].get("status")
        if status is None and payload.get("success") is True and payload.get("data"):
            status = "success"
        return status
