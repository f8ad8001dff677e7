"""
OpenAI TTS Provider

Synchronous request/response speech with the six stock OpenAI voices.
"""

from typing import List, Optional

from openai import AsyncOpenAI

from ..generation_errors import GenerationFailedError, raise_classified
from .base_provider import (
    BaseSpeechProvider,
    SpeechConfig,
    SpeechProviderType,
    VoiceGender,
    VoiceInfo,
)


OPENAI_VOICES = [
    {"id": "alloy", "name": "Alloy", "gender": VoiceGender.NEUTRAL},
    {"id": "echo", "name": "Echo", "gender": VoiceGender.MALE},
    {"id": "fable", "name": "Fable", "gender": VoiceGender.NEUTRAL},
    {"id": "onyx", "name": "Onyx", "gender": VoiceGender.MALE},
    {"id": "nova", "name": "Nova", "gender": VoiceGender.FEMALE},
    {"id": "shimmer", "name": "Shimmer", "gender": VoiceGender.FEMALE},
]

DEFAULT_OPENAI_VOICE = "alloy"


class OpenAIProvider(BaseSpeechProvider):
    """OpenAI TTS provider"""

    def __init__(self, api_key: str = "", client: Optional[AsyncOpenAI] = None):
        super().__init__(SpeechProviderType.OPENAI, api_key)
        self.client = client
        self.model = "tts-1"

    def _get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client"""
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.api_key)
        return self.client

    def is_available(self) -> bool:
        return bool(self.api_key) or self.client is not None

    async def synthesize(self, config: SpeechConfig) -> bytes:
        """Generate speech using OpenAI"""
        if not self.is_available():
            raise GenerationFailedError("OpenAI API Key missing")

        voice = config.voice_id or DEFAULT_OPENAI_VOICE
        self._log(f"Generating: voice={voice}, model={self.model}")

        try:
            response = await self._get_client().audio.speech.create(
                model=self.model,
                voice=voice,
                input=config.text,
                response_format="mp3" if config.output_format == "mp3" else "wav",
                speed=config.speed,
            )
        except Exception as e:
            self._log(f"Generation failed: {e}")
            raise_classified(e, f"OpenAI TTS Error: {e}")

        return response.content

    def get_available_voices(self) -> List[VoiceInfo]:
        return [
            VoiceInfo(
                voice_id=voice["id"],
                name=voice["name"],
                provider=self.provider_type,
                gender=voice["gender"],
                description=f"OpenAI {voice['name']}",
            )
            for voice in OPENAI_VOICES
        ]
