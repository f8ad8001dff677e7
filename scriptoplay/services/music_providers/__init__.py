"""
Music Providers Package

- Suno (AceData): job based, polled with a hard attempt ceiling
- MusicGen (Replicate): synchronous prediction
"""

from .base_provider import BaseMusicProvider, MusicProviderType
from .musicgen_provider import MusicGenProvider
from .suno_provider import SunoProvider

__all__ = [
    "BaseMusicProvider",
    "MusicProviderType",
    "MusicGenProvider",
    "SunoProvider",
]
