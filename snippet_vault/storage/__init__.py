"""Tier storage backends."""

from .base import (
    DEFAULT_QUOTA_BYTES,
    LEGACY_EMBEDDINGS_KEY,
    SNIPPETS_KEY,
    StorageBackend,
)
from .file import JsonFileStorageBackend
from .memory import MemoryStorageBackend
from .redis_backend import RedisStorageBackend

__all__ = [
    "DEFAULT_QUOTA_BYTES",
    "LEGACY_EMBEDDINGS_KEY",
    "SNIPPETS_KEY",
    "StorageBackend",
    "JsonFileStorageBackend",
    "MemoryStorageBackend",
    "RedisStorageBackend",
]
