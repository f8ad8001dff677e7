"""
Speech Providers Package

- OpenAI: stock voices, default provider
- ElevenLabs: premium multilingual voices
"""

from .base_provider import BaseSpeechProvider, SpeechConfig, SpeechProviderType, VoiceInfo
from .elevenlabs_provider import ElevenLabsProvider
from .openai_provider import OpenAIProvider
from .provider_service import VOICE_CATALOG, SpeechProviderService, resolve_speech_provider

__all__ = [
    "BaseSpeechProvider",
    "SpeechConfig",
    "SpeechProviderType",
    "VoiceInfo",
    "OpenAIProvider",
    "ElevenLabsProvider",
    "SpeechProviderService",
    "VOICE_CATALOG",
    "resolve_speech_provider",
]
