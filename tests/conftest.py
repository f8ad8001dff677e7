"""
Pytest configuration and shared fixtures for the Scriptoplay generation core.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from scriptoplay.config import PollSettings, ProviderCredentials, ScriptoplaySettings
from scriptoplay.providers.fal_provider import FalProvider


# ============================================
# Configuration Fixtures
# ============================================

@pytest.fixture
def settings():
    """Settings with test credentials and no waiting between polls."""
    return ScriptoplaySettings(
        credentials=ProviderCredentials(
            fal_key="fal-test-key",
            fal_webhook_url=None,
            openai_api_key="sk-test",
            elevenlabs_api_key="el-test",
            acedata_api_key="ace-test",
            replicate_api_token="r8-test",
        ),
        polling=PollSettings(
            music_poll_interval=0,
            music_poll_attempts=3,
            replicate_timeout=1.0,
            replicate_poll_interval=0,
        ),
    )


# ============================================
# Provider Fixtures
# ============================================

@pytest.fixture
def fal_client_mock():
    """Stand-in for fal_client.AsyncClient."""
    client = MagicMock()
    client.subscribe = AsyncMock()
    client.submit = AsyncMock(return_value=MagicMock(request_id="req-123"))
    client.status = AsyncMock()
    client.result = AsyncMock()
    client.get_handle = MagicMock(return_value=MagicMock(response_url=None))
    return client


@pytest.fixture
def fal_provider(fal_client_mock):
    return FalProvider("fal-test-key", client=fal_client_mock)


@pytest.fixture
def storage():
    """Artifact storage returning a predictable public URL."""
    storage = MagicMock()
    storage.upload_artifact = AsyncMock(
        side_effect=lambda key, data, content_type=None: f"https://cdn.test/user-assets/{key}"
    )
    return storage
