"""
ElevenLabs TTS Provider

Premium API-based TTS, multilingual v2 model.
"""

from typing import List, Optional

import httpx

from ..generation_errors import GenerationFailedError, raise_classified
from .base_provider import (
    BaseSpeechProvider,
    SpeechConfig,
    SpeechProviderType,
    VoiceGender,
    VoiceInfo,
)


ELEVENLABS_VOICES = [
    {"id": "21m00Tcm4TlvDq8ikWAM", "name": "Rachel", "gender": VoiceGender.FEMALE},
    {"id": "AZnzlk1XvdvUeBnXmlld", "name": "Domi", "gender": VoiceGender.FEMALE},
    {"id": "EXAVITQu4vr4xnSDxMaL", "name": "Bella", "gender": VoiceGender.FEMALE},
    {"id": "MF3mGyEYCl7XYWbV9V6O", "name": "Elli", "gender": VoiceGender.FEMALE},
    {"id": "TxGEqnHWrfWFTfGW9XjX", "name": "Josh", "gender": VoiceGender.MALE},
    {"id": "VR6AewLTigWg4xSOukaG", "name": "Arnold", "gender": VoiceGender.MALE},
    {"id": "pNInz6obpgDQGcFmaJgB", "name": "Adam", "gender": VoiceGender.MALE},
    {"id": "ErXwobaYiN019PkySvjV", "name": "Antoni", "gender": VoiceGender.MALE},
    {"id": "yoZ06aMxZJJ28mfd3POQ", "name": "Sam", "gender": VoiceGender.MALE},
    {"id": "flq6f7yk4E4fJM5XTYuZ", "name": "Michael", "gender": VoiceGender.MALE},
]

DEFAULT_ELEVENLABS_VOICE = "21m00Tcm4TlvDq8ikWAM"  # Rachel


class ElevenLabsProvider(BaseSpeechProvider):
    """ElevenLabs TTS provider"""

    def __init__(self, api_key: str = "", transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(SpeechProviderType.ELEVENLABS, api_key)
        self.base_url = "https://api.elevenlabs.io/v1"
        self.model_id = "eleven_multilingual_v2"
        self.stability = 0.5
        self.similarity_boost = 0.75
        self._transport = transport

    async def synthesize(self, config: SpeechConfig) -> bytes:
        """Generate speech using ElevenLabs"""
        if not self.is_available():
            raise GenerationFailedError("ElevenLabs API Key missing")

        voice_id = config.voice_id or DEFAULT_ELEVENLABS_VOICE
        self._log(f"Generating: voice={voice_id}, model={self.model_id}")

        async with httpx.AsyncClient(timeout=120.0, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/text-to-speech/{voice_id}",
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "audio/mpeg",
                },
                json={
                    "text": config.text,
                    "model_id": self.model_id,
                    "voice_settings": {
                        "stability": self.stability,
                        "similarity_boost": self.similarity_boost,
                    },
                },
            )

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                detail = self._error_detail(response)
                self._log(f"Generation failed: {response.status_code} {detail}")
                raise_classified(e, f"ElevenLabs Failed: {detail}")

            return response.content

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        detail = data.get("detail") if isinstance(data, dict) else None
        if isinstance(detail, dict):
            return str(detail.get("message") or detail)
        return str(detail or data)

    def get_available_voices(self) -> List[VoiceInfo]:
        return [
            VoiceInfo(
                voice_id=voice["id"],
                name=voice["name"],
                provider=self.provider_type,
                gender=voice["gender"],
                description=f"ElevenLabs {voice['name']}",
            )
            for voice in ELEVENLABS_VOICES
        ]
