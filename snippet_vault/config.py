"""Environment-driven runtime configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .storage.base import DEFAULT_QUOTA_BYTES, StorageBackend
from .storage.file import JsonFileStorageBackend
from .storage.memory import MemoryStorageBackend
from .storage.redis_backend import RedisStorageBackend
from .tier import Tier

logger = logging.getLogger("snippet_vault")

STORAGE_BACKENDS = ("file", "redis", "memory")


@dataclass(slots=True)
class VaultSettings:
    """Runtime configuration shared by the API, MCP server and CLI."""

    storage_backend: str
    data_dir: str
    redis_url: str
    redis_prefix: str
    local_quota_bytes: int
    sync_quota_bytes: int
    search_threshold: float
    log_level: str

    @classmethod
    def from_env(cls) -> "VaultSettings":
        def _int_env(name: str, default: int) -> int:
            raw = os.getenv(name)
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError:
                logger.warning("Invalid integer for %s: %s", name, raw)
                return default

        def _float_env(name: str, default: float) -> float:
            raw = os.getenv(name)
            if not raw:
                return default
            try:
                return float(raw)
            except ValueError:
                logger.warning("Invalid float for %s: %s", name, raw)
                return default

        threshold = _float_env("VAULT_SEARCH_THRESHOLD", 0.4)
        if not 0.0 <= threshold <= 1.0:
            logger.warning("Search threshold %s is outside [0, 1]; using 0.4", threshold)
            threshold = 0.4

        backend = os.getenv("VAULT_STORAGE_BACKEND", "file").strip().lower()
        if backend not in STORAGE_BACKENDS:
            logger.warning("Unknown storage backend %s; using file storage", backend)
            backend = "file"

        return cls(
            storage_backend=backend,
            data_dir=os.getenv("VAULT_DATA_DIR", os.path.join("~", ".snippet_vault")),
            redis_url=os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0"),
            redis_prefix=os.getenv("VAULT_REDIS_PREFIX", RedisStorageBackend.KEY_PREFIX),
            local_quota_bytes=_int_env("VAULT_LOCAL_QUOTA_BYTES", DEFAULT_QUOTA_BYTES[Tier.LOCAL]),
            sync_quota_bytes=_int_env("VAULT_SYNC_QUOTA_BYTES", DEFAULT_QUOTA_BYTES[Tier.SYNC]),
            search_threshold=threshold,
            log_level=os.getenv("VAULT_LOG_LEVEL", "INFO"),
        )

    @property
    def quotas(self) -> dict[Tier, int]:
        return {Tier.LOCAL: self.local_quota_bytes, Tier.SYNC: self.sync_quota_bytes}


def build_backend(settings: VaultSettings) -> StorageBackend:
    """Instantiate the storage backend selected by ``settings``."""
    if settings.storage_backend == "redis":
        return RedisStorageBackend.from_url(
            settings.redis_url,
            prefix=settings.redis_prefix,
            quotas=settings.quotas,
        )
    if settings.storage_backend == "memory":
        return MemoryStorageBackend(quotas=settings.quotas)
    return JsonFileStorageBackend(settings.data_dir, quotas=settings.quotas)


__all__ = ["STORAGE_BACKENDS", "VaultSettings", "build_backend"]
