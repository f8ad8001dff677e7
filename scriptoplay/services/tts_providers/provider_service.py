"""
Speech Provider Service

Routes speech requests to a provider:
1. Explicit provider (model "openai" / "elevenlabs") wins
2. Otherwise the voice catalog decides
3. Unknown long opaque ids are ElevenLabs voice ids, anything else OpenAI
"""

from typing import Dict, List, Optional

from ..generation_errors import GenerationFailedError
from .base_provider import BaseSpeechProvider, SpeechConfig, SpeechProviderType, VoiceInfo
from .elevenlabs_provider import ELEVENLABS_VOICES
from .openai_provider import OPENAI_VOICES


# voice id -> provider
VOICE_CATALOG: Dict[str, SpeechProviderType] = {
    **{voice["id"]: SpeechProviderType.OPENAI for voice in OPENAI_VOICES},
    **{voice["id"]: SpeechProviderType.ELEVENLABS for voice in ELEVENLABS_VOICES},
}

# ElevenLabs ids are 20-char opaque strings, OpenAI voice names are short words
OPAQUE_VOICE_ID_LENGTH = 10


def resolve_speech_provider(voice: Optional[str], requested: Optional[str] = None) -> SpeechProviderType:
    """Pick the speech provider for a voice id."""
    if requested in (SpeechProviderType.OPENAI.value, SpeechProviderType.ELEVENLABS.value):
        return SpeechProviderType(requested)

    if voice in VOICE_CATALOG:
        return VOICE_CATALOG[voice]

    if voice and len(voice) > OPAQUE_VOICE_ID_LENGTH:
        return SpeechProviderType.ELEVENLABS

    return SpeechProviderType.OPENAI


class SpeechProviderService:
    """Holds the configured speech providers and dispatches to them."""

    def __init__(self, providers: List[BaseSpeechProvider]):
        self._providers: Dict[SpeechProviderType, BaseSpeechProvider] = {
            provider.provider_type: provider for provider in providers
        }

    def get_provider(self, provider_type: SpeechProviderType) -> BaseSpeechProvider:
        provider = self._providers.get(provider_type)
        if provider is None:
            raise GenerationFailedError(f"Speech provider {provider_type.value} is not configured")
        return provider

    async def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        provider: Optional[str] = None,
    ) -> bytes:
        """Synthesize speech with the provider resolved for this voice."""
        if not text:
            raise GenerationFailedError("Speech generation requires text")

        provider_type = resolve_speech_provider(voice, provider)
        config = SpeechConfig(text=text, voice_id=voice, speed=speed or 1.0)
        return await self.get_provider(provider_type).synthesize(config)

    def get_all_voices(self) -> List[VoiceInfo]:
        voices: List[VoiceInfo] = []
        for provider in self._providers.values():
            voices.extend(provider.get_available_voices())
        return voices
