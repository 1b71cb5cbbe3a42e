from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import VaultSettings, build_backend
from .search.engine import SearchEngine
from .snippet.repository import SnippetRepository
from .storage.base import StorageBackend

logger = logging.getLogger("snippet_vault")


@dataclass(slots=True)
class VaultSession:
    """One repository and search engine pair, built once per process."""

    settings: VaultSettings
    backend: StorageBackend
    repository: SnippetRepository
    engine: SearchEngine

    @classmethod
    def from_settings(cls, settings: VaultSettings, *, backend: StorageBackend | None = None) -> "VaultSession":
        backend = backend or build_backend(settings)
        repository = SnippetRepository(backend)
        engine = SearchEngine(repository, threshold=settings.search_threshold)
        return cls(settings=settings, backend=backend, repository=repository, engine=engine)

    async def open(self) -> None:
        logger.debug("Opening %s storage backend", self.settings.storage_backend)
        await self.repository.open()

    async def close(self) -> None:
        close = getattr(self.backend, "close", None)
        if close is not None:
            await close()


__all__ = ["VaultSession"]
