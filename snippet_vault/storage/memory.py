from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from ..errors import (
    StorageError,
    StorageReadFailed,
    StorageRemoveFailed,
    StorageWriteFailed,
)
from ..tier import Tier
from .base import DEFAULT_QUOTA_BYTES, encode_value, measure_bytes

logger = logging.getLogger("snippet_vault")

_DEFAULT_FAILURES: dict[str, type[StorageError]] = {
    "get": StorageReadFailed,
    "set": StorageWriteFailed,
    "remove": StorageRemoveFailed,
    "bytes_in_use": StorageReadFailed,
}


class MemoryStorageBackend:
    """In-process backend that stores JSON copies of every value.

    Values go through a JSON round-trip on the way in and out so callers can
    never share mutable state with the store. Failures can be queued per
    operation and tier with :meth:`fail_next`, which is what the tests use to
    exercise partial-write paths.
    """

    def __init__(self, quotas: Mapping[Tier, int] | None = None) -> None:
        self._data: dict[Tier, dict[str, str]] = {tier: {} for tier in Tier}
        self._quotas = dict(quotas or DEFAULT_QUOTA_BYTES)
        self._failures: dict[tuple[str, Tier], list[StorageError]] = {}
        self.writes: list[tuple[Tier, dict[str, Any]]] = []

    def fail_next(self, operation: str, tier: Tier, error: StorageError | None = None) -> None:
        if operation not in _DEFAULT_FAILURES:
            raise ValueError(f"Unknown storage operation: {operation}")
        if error is None:
            error = _DEFAULT_FAILURES[operation](f"Injected {operation} failure for {tier.value}")
        self._failures.setdefault((operation, tier), []).append(error)

    def raw(self, tier: Tier) -> dict[str, Any]:
        """Decoded snapshot of everything stored in ``tier``."""
        return {key: json.loads(value) for key, value in self._data[tier].items()}

    async def get(self, tier: Tier, keys: Sequence[str]) -> dict[str, Any]:
        self._raise_pending("get", tier)
        stored = self._data[tier]
        return {key: json.loads(stored[key]) for key in keys if key in stored}

    async def set(self, tier: Tier, data: Mapping[str, Any]) -> None:
        self._raise_pending("set", tier)
        try:
            encoded = {key: encode_value(value) for key, value in data.items()}
        except (TypeError, ValueError) as exc:
            raise StorageWriteFailed(f"Storage write failed: {exc}") from exc
        self._data[tier].update(encoded)
        self.writes.append((tier, {key: json.loads(value) for key, value in encoded.items()}))

    async def remove(self, tier: Tier, keys: Sequence[str]) -> None:
        self._raise_pending("remove", tier)
        for key in keys:
            self._data[tier].pop(key, None)

    async def bytes_in_use(self, tier: Tier, keys: Sequence[str] | None = None) -> int:
        self._raise_pending("bytes_in_use", tier)
        stored = self.raw(tier)
        selected = stored.keys() if keys is None else [key for key in keys if key in stored]
        return measure_bytes((key, stored[key]) for key in selected)

    def quota_bytes(self, tier: Tier) -> int:
        return self._quotas[tier]

    def _raise_pending(self, operation: str, tier: Tier) -> None:
        pending = self._failures.get((operation, tier))
        if pending:
            error = pending.pop(0)
            logger.debug("Raising injected %s failure for %s", operation, tier.value)
            raise error


__all__ = ["MemoryStorageBackend"]
