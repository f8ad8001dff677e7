from .settings import (
    DuckingSettings,
    EngineSettings,
    MixSettings,
    PollSettings,
    ProviderCredentials,
    ScriptoplaySettings,
    get_settings,
    load_settings,
)

__all__ = [
    "DuckingSettings",
    "EngineSettings",
    "MixSettings",
    "PollSettings",
    "ProviderCredentials",
    "ScriptoplaySettings",
    "get_settings",
    "load_settings",
]
