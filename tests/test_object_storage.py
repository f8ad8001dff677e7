"""
Tests for artifact uploads to S3-compatible storage.
"""

from unittest.mock import MagicMock

import pytest

from scriptoplay.shared.object_storage import (
    ObjectStorageClient,
    StorageConfig,
    guess_content_type,
    load_storage_config,
)


@pytest.fixture
def config():
    return StorageConfig(
        endpoint="http://minio:9000",
        access_key="key",
        secret_key="secret",
        region="us-east-1",
        use_ssl=False,
        public_url="https://media.scriptoplay.test",
        assets_bucket="user-assets",
    )


class TestObjectStorage:

    @pytest.mark.asyncio
    async def test_upload_artifact(self, config):
        storage = ObjectStorageClient(config)
        storage._client = MagicMock()

        url = await storage.upload_artifact("projects/p1/final_render_1.mp4", b"video")

        assert url == "https://media.scriptoplay.test/user-assets/projects/p1/final_render_1.mp4"
        fileobj, bucket, key = storage._client.upload_fileobj.call_args.args
        assert fileobj.read() == b"video"
        assert (bucket, key) == ("user-assets", "projects/p1/final_render_1.mp4")
        assert storage._client.upload_fileobj.call_args.kwargs["ExtraArgs"] == {"ContentType": "video/mp4"}

    @pytest.mark.asyncio
    async def test_upload_failure_propagates(self, config):
        storage = ObjectStorageClient(config)
        storage._client = MagicMock()
        storage._client.upload_fileobj.side_effect = RuntimeError("NoSuchBucket")

        with pytest.raises(RuntimeError):
            await storage.upload_artifact("projects/p1/x.mp4", b"video", "video/mp4")

    @pytest.mark.parametrize("path,expected", [
        ("a/b.mp4", "video/mp4"),
        ("a/b.MP3", "audio/mpeg"),
        ("a/b.bin", "application/octet-stream"),
    ])
    def test_guess_content_type(self, path, expected):
        assert guess_content_type(path) == expected

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("STORAGE_ENDPOINT", "https://s3.example.test")
        monkeypatch.setenv("STORAGE_PUBLIC_URL", "https://cdn.example.test/")
        monkeypatch.setenv("STORAGE_BUCKET", "renders")
        monkeypatch.delenv("STORAGE_USE_SSL", raising=False)

        config = load_storage_config()

        assert config.use_ssl is True
        assert config.public_url == "https://cdn.example.test"
        assert config.assets_bucket == "renders"
