"""Storage backend contract shared by every tier implementation."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

from ..tier import Tier

SNIPPETS_KEY = "snippets"
LEGACY_EMBEDDINGS_KEY = "snippet_embeddings_v1"

DEFAULT_QUOTA_BYTES: dict[Tier, int] = {
    Tier.LOCAL: 10_485_760,
    Tier.SYNC: 102_400,
}


@runtime_checkable
class StorageBackend(Protocol):
    """Async key/value store with exactly two named tiers.

    Every call may raise one of the ``StorageError`` subclasses: reads raise
    ``StorageReadFailed``, writes ``StorageWriteFailed``, removals
    ``StorageRemoveFailed``, and any call raises ``StorageUnavailable`` when the
    tier cannot be reached at all.
    """

    async def get(self, tier: Tier, keys: Sequence[str]) -> dict[str, Any]:
        """Return the stored values for ``keys``; absent keys are omitted."""
        ...

    async def set(self, tier: Tier, data: Mapping[str, Any]) -> None:
        ...

    async def remove(self, tier: Tier, keys: Sequence[str]) -> None:
        ...

    async def bytes_in_use(self, tier: Tier, keys: Sequence[str] | None = None) -> int:
        """Bytes used by ``keys`` (or the whole tier when ``keys`` is None)."""
        ...

    def quota_bytes(self, tier: Tier) -> int:
        ...


def encode_value(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def measure_bytes(items: Iterable[tuple[str, Any]]) -> int:
    """Approximate usage as the UTF-8 size of each key plus its JSON value."""
    total = 0
    for key, value in items:
        total += len(key.encode("utf-8")) + len(encode_value(value).encode("utf-8"))
    return total


__all__ = [
    "DEFAULT_QUOTA_BYTES",
    "LEGACY_EMBEDDINGS_KEY",
    "SNIPPETS_KEY",
    "StorageBackend",
    "encode_value",
    "measure_bytes",
]
