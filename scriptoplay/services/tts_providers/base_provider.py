"""
Base Speech Provider

Abstract base class for text-to-speech providers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class SpeechProviderType(str, Enum):
    """Available speech providers"""
    OPENAI = "openai"
    ELEVENLABS = "elevenlabs"


class VoiceGender(str, Enum):
    """Voice gender options"""
    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


@dataclass
class SpeechConfig:
    """Configuration for one speech synthesis call"""
    text: str
    voice_id: Optional[str] = None
    speed: float = 1.0
    output_format: str = "mp3"


@dataclass
class VoiceInfo:
    """Information about an available voice"""
    voice_id: str
    name: str
    provider: SpeechProviderType
    gender: VoiceGender
    description: Optional[str] = None


class BaseSpeechProvider(ABC):
    """Abstract base class for speech providers"""

    def __init__(self, provider_type: SpeechProviderType, api_key: str = ""):
        self.provider_type = provider_type
        self.api_key = api_key

    @property
    def name(self) -> str:
        return self.provider_type.value

    def is_available(self) -> bool:
        """A provider is usable once it has credentials"""
        return bool(self.api_key)

    @abstractmethod
    async def synthesize(self, config: SpeechConfig) -> bytes:
        """Generate speech audio, raising a GenerationError on failure"""
        pass

    @abstractmethod
    def get_available_voices(self) -> List[VoiceInfo]:
        """Voices this provider offers"""
        pass

    def _log(self, message: str):
        """Log a message with provider prefix"""
        logger.info(f"[TTS-{self.name.upper()}] {message}")
