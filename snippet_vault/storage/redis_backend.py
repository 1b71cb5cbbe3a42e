"""Redis-backed tier storage."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from ..errors import (
    StorageReadFailed,
    StorageRemoveFailed,
    StorageUnavailable,
    StorageWriteFailed,
)
from ..tier import Tier
from .base import DEFAULT_QUOTA_BYTES, encode_value, measure_bytes

logger = logging.getLogger("snippet_vault")


class RedisStorageBackend:
    """Store every tier key as a JSON string under ``{prefix}:{tier}:{key}``."""

    KEY_PREFIX = "snippet_vault"

    def __init__(
        self,
        redis_client: aioredis.Redis,
        *,
        prefix: str | None = None,
        quotas: Mapping[Tier, int] | None = None,
    ) -> None:
        self.redis = redis_client
        self.prefix = prefix or self.KEY_PREFIX
        self._quotas = dict(quotas or DEFAULT_QUOTA_BYTES)

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> "RedisStorageBackend":
        return cls(aioredis.Redis.from_url(redis_url), **kwargs)

    def _key(self, tier: Tier, key: str) -> str:
        return f"{self.prefix}:{tier.value}:{key}"

    async def get(self, tier: Tier, keys: Sequence[str]) -> dict[str, Any]:
        if not keys:
            return {}
        try:
            raw_values = await self.redis.mget([self._key(tier, key) for key in keys])
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StorageUnavailable(f"Redis is not available: {exc}") from exc
        except RedisError as exc:
            raise StorageReadFailed(f"Storage read failed: {exc}") from exc

        result: dict[str, Any] = {}
        for key, raw in zip(keys, raw_values):
            if raw is None:
                continue
            result[key] = self._decode(raw, key)
        return result

    async def set(self, tier: Tier, data: Mapping[str, Any]) -> None:
        try:
            encoded = {self._key(tier, key): encode_value(value) for key, value in data.items()}
        except (TypeError, ValueError) as exc:
            raise StorageWriteFailed(f"Storage write failed: {exc}") from exc
        if not encoded:
            return
        try:
            pipe = self.redis.pipeline()
            for key, payload in encoded.items():
                pipe.set(key, payload)
            await pipe.execute()
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StorageUnavailable(f"Redis is not available: {exc}") from exc
        except RedisError as exc:
            raise StorageWriteFailed(f"Storage write failed: {exc}") from exc

    async def remove(self, tier: Tier, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            await self.redis.delete(*[self._key(tier, key) for key in keys])
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StorageUnavailable(f"Redis is not available: {exc}") from exc
        except RedisError as exc:
            raise StorageRemoveFailed(f"Storage remove failed: {exc}") from exc

    async def bytes_in_use(self, tier: Tier, keys: Sequence[str] | None = None) -> int:
        if keys is None:
            tier_prefix = self._key(tier, "")
            try:
                names = [
                    _as_text(name)[len(tier_prefix):]
                    async for name in self.redis.scan_iter(match=f"{tier_prefix}*")
                ]
            except (RedisConnectionError, RedisTimeoutError) as exc:
                raise StorageUnavailable(f"Redis is not available: {exc}") from exc
            except RedisError as exc:
                raise StorageReadFailed(f"Storage bytes failed: {exc}") from exc
            keys = names
        stored = await self.get(tier, keys)
        return measure_bytes(stored.items())

    def quota_bytes(self, tier: Tier) -> int:
        return self._quotas[tier]

    async def close(self) -> None:
        await self.redis.aclose()

    @staticmethod
    def _decode(raw: Any, key: str) -> Any:
        try:
            return json.loads(_as_text(raw))
        except (TypeError, json.JSONDecodeError) as exc:
            raise StorageReadFailed(f"Stored value for {key} is not valid JSON") from exc


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


__all__ = ["RedisStorageBackend"]
