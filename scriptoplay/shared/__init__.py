"""
Shared infrastructure (object storage).
"""

from .object_storage import ObjectStorageClient, StorageConfig, get_storage_client, load_storage_config

__all__ = [
    "ObjectStorageClient",
    "StorageConfig",
    "get_storage_client",
    "load_storage_config",
]
