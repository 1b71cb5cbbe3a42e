from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TypeVar

from ..errors import (
    StorageReadFailed,
    StorageRemoveFailed,
    StorageUnavailable,
    StorageWriteFailed,
)
from ..tier import Tier
from .base import DEFAULT_QUOTA_BYTES, encode_value, measure_bytes

logger = logging.getLogger("snippet_vault")

_T = TypeVar("_T")


class JsonFileStorageBackend:
    """Persist each tier as a single JSON document under ``data_dir``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crashed write never leaves a truncated tier.
    File access runs in the default executor, one operation at a time.
    """

    def __init__(self, data_dir: str | Path, quotas: Mapping[Tier, int] | None = None) -> None:
        self.data_dir = Path(data_dir).expanduser()
        self._quotas = dict(quotas or DEFAULT_QUOTA_BYTES)
        self._lock = asyncio.Lock()

    def tier_path(self, tier: Tier) -> Path:
        return self.data_dir / f"{tier.value}.json"

    async def get(self, tier: Tier, keys: Sequence[str]) -> dict[str, Any]:
        return await self._run(self._get_sync, tier, keys)

    async def set(self, tier: Tier, data: Mapping[str, Any]) -> None:
        await self._run(self._set_sync, tier, data)

    async def remove(self, tier: Tier, keys: Sequence[str]) -> None:
        await self._run(self._remove_sync, tier, keys)

    async def bytes_in_use(self, tier: Tier, keys: Sequence[str] | None = None) -> int:
        return await self._run(self._bytes_in_use_sync, tier, keys)

    def quota_bytes(self, tier: Tier) -> int:
        return self._quotas[tier]

    async def _run(self, func: Callable[..., _T], *args: Any) -> _T:
        loop = asyncio.get_running_loop()
        async with self._lock:
            return await loop.run_in_executor(None, func, *args)

    def _get_sync(self, tier: Tier, keys: Sequence[str]) -> dict[str, Any]:
        document = self._read(tier)
        return {key: document[key] for key in keys if key in document}

    def _set_sync(self, tier: Tier, data: Mapping[str, Any]) -> None:
        document = self._read(tier)
        document.update(data)
        self._write(tier, document, StorageWriteFailed)

    def _remove_sync(self, tier: Tier, keys: Sequence[str]) -> None:
        try:
            document = self._read(tier)
        except StorageReadFailed as exc:
            raise StorageRemoveFailed(f"Storage remove failed: {exc}") from exc
        if not any(key in document for key in keys):
            return
        for key in keys:
            document.pop(key, None)
        self._write(tier, document, StorageRemoveFailed)

    def _bytes_in_use_sync(self, tier: Tier, keys: Sequence[str] | None) -> int:
        document = self._read(tier)
        selected = document.keys() if keys is None else [key for key in keys if key in document]
        return measure_bytes((key, document[key]) for key in selected)

    def _read(self, tier: Tier) -> dict[str, Any]:
        path = self.tier_path(tier)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as file_handle:
                document = json.load(file_handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageReadFailed(f"Storage read failed for {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StorageReadFailed(f"Storage document {path} is not a JSON object")
        return document

    def _write(
        self,
        tier: Tier,
        document: Mapping[str, Any],
        error_type: type[StorageWriteFailed] | type[StorageRemoveFailed],
    ) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"Storage directory {self.data_dir} is not available: {exc}") from exc

        path = self.tier_path(tier)
        try:
            payload = encode_value(dict(document))
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{tier.value}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as file_handle:
                    file_handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise error_type(f"Storage write failed for {path}: {exc}") from exc
        logger.debug("Wrote %s storage to %s", tier.value, path)


__all__ = ["JsonFileStorageBackend"]
