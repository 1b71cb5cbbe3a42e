"""Snippet repository: the sole mutator of persisted tier state."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Sequence

from pydantic import ValidationError

from ..errors import (
    DuplicateAcrossTiers,
    DuplicateId,
    InvalidArgument,
    InvalidSchema,
    MissingTier,
    NotFound,
    PartialTransferFailure,
    RepositoryNotLoaded,
    StorageError,
)
from ..storage.base import LEGACY_EMBEDDINGS_KEY, SNIPPETS_KEY, StorageBackend
from .model import Snippet, Tier, TieredSnippet

logger = logging.getLogger("snippet_vault")

IdGenerator = Callable[[], str]


def generate_snippet_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class StorageUsage:
    """Bytes used by a tier against its quota."""

    tier: Tier
    bytes_used: int
    quota_bytes: int

    @property
    def used_kb(self) -> float:
        return self.bytes_used / 1024

    @property
    def limit_kb(self) -> float:
        return self.quota_bytes / 1024


class SnippetRepository:
    """Own the in-memory mirror of both tiers and keep it in step with storage.

    Every mutation writes the whole tier back to the backend and only then
    commits the new sequence to the mirror, so a failed write leaves the
    mirror equal to what is stored. Mutations are not serialised against each
    other; callers await each one before issuing the next.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        id_generator: IdGenerator = generate_snippet_id,
    ) -> None:
        self.backend = backend
        self._id_generator = id_generator
        self._tiers: dict[Tier, List[Snippet]] = {}

    @property
    def is_loaded(self) -> bool:
        return all(tier in self._tiers for tier in Tier)

    async def open(self) -> None:
        """Run the load cycle: initialise, load and repair both tiers."""
        for tier in Tier:
            await self.ensure_tier(tier)
        for tier in Tier:
            self._tiers[tier] = await self.load(tier)
        for tier in Tier:
            await self.repair_ids(tier)
        await self.clear_legacy_embeddings()
        counts = self.counts()
        logger.info(
            "Loaded %d local and %d synced snippets",
            counts[Tier.LOCAL],
            counts[Tier.SYNC],
        )

    async def refresh(self, tier: Tier) -> List[Snippet]:
        """Reload one tier from storage, replacing whatever the mirror holds."""
        await self.ensure_tier(tier)
        self._tiers[tier] = await self.load(tier)
        await self.repair_ids(tier)
        return self.snippets(tier)

    async def ensure_tier(self, tier: Tier) -> None:
        result = await self.backend.get(tier, [SNIPPETS_KEY])
        if SNIPPETS_KEY not in result or result[SNIPPETS_KEY] is None:
            logger.info("Initialising empty %s snippet storage", tier.value)
            await self.backend.set(tier, {SNIPPETS_KEY: []})
            return
        if not isinstance(result[SNIPPETS_KEY], list):
            raise InvalidSchema(f"Snippets storage for {tier.value} must be a list")

    async def load(self, tier: Tier) -> List[Snippet]:
        result = await self.backend.get(tier, [SNIPPETS_KEY])
        if SNIPPETS_KEY not in result or result[SNIPPETS_KEY] is None:
            raise MissingTier(f"Snippets storage is missing for {tier.value}")
        stored = result[SNIPPETS_KEY]
        if not isinstance(stored, list):
            raise InvalidSchema(f"Snippets storage for {tier.value} must be a list")
        return [self._parse_entry(tier, position, entry) for position, entry in enumerate(stored)]

    async def repair_ids(self, tier: Tier) -> int:
        """Give every id-less entry a fresh id; persist only if one changed."""
        current = self._require_tier(tier)
        repaired = 0
        updated: List[Snippet] = []
        for snippet in current:
            if not snippet.id:
                snippet_id = self._id_generator()
                if not snippet_id:
                    raise InvalidArgument("Id generator returned an empty id")
                snippet = snippet.model_copy(update={"id": snippet_id})
                repaired += 1
            updated.append(snippet)

        if repaired:
            try:
                await self._persist(tier, updated)
            except StorageError:
                # No mutation may run against a tier holding id-less entries.
                self._tiers.pop(tier, None)
                raise
            self._tiers[tier] = updated
            logger.info("Assigned ids to %d legacy %s snippets", repaired, tier.value)
        return repaired

    async def clear_legacy_embeddings(self) -> None:
        await self.backend.remove(Tier.LOCAL, [LEGACY_EMBEDDINGS_KEY])

    def create_snippet(self, text: str, source: str) -> Snippet:
        normalized = text.strip() if isinstance(text, str) else ""
        if not normalized:
            raise InvalidArgument("Snippet text is required")
        if not isinstance(source, str) or not source:
            raise InvalidArgument("Snippet source is required")
        snippet_id = self._id_generator()
        if not snippet_id:
            raise InvalidArgument("Id generator returned an empty id")
        return Snippet(
            id=snippet_id,
            text=normalized,
            source=source,
            created_at=datetime.now(timezone.utc),
        )

    async def append(self, tier: Tier, snippet: Snippet) -> Snippet:
        current = self._require_tier(tier)
        if not snippet.id:
            raise InvalidArgument("Snippet id is required")
        if self._find_index(current, snippet.id) is not None:
            raise DuplicateId(tier, snippet.id)

        updated = [*current, snippet]
        await self._persist(tier, updated)
        self._tiers[tier] = updated
        logger.info("Saved snippet %s to %s storage", snippet.id, tier.value)
        return snippet

    async def remove(self, tier: Tier, snippet_id: str) -> Snippet:
        current = self._require_tier(tier)
        index = self._require_index(tier, current, snippet_id)
        removed = current[index]

        updated = current[:index] + current[index + 1:]
        await self._persist(tier, updated)
        self._tiers[tier] = updated
        logger.info("Deleted snippet %s from %s storage", snippet_id, tier.value)
        return removed

    async def transfer(self, source: Tier, snippet_id: str, destination: Tier) -> Snippet:
        if source is destination:
            raise InvalidArgument("Target storage area must be different")
        source_snippets = self._require_tier(source)
        destination_snippets = self._require_tier(destination)
        index = self._require_index(source, source_snippets, snippet_id)
        if self._find_index(destination_snippets, snippet_id) is not None:
            raise DuplicateAcrossTiers(destination, snippet_id)

        snippet = source_snippets[index]
        updated_source = source_snippets[:index] + source_snippets[index + 1:]
        updated_destination = [*destination_snippets, snippet]

        await self._persist(source, updated_source)
        self._tiers[source] = updated_source
        try:
            await self._persist(destination, updated_destination)
        except StorageError as exc:
            logger.error(
                "Snippet %s left %s storage but could not be written to %s storage",
                snippet_id,
                source.value,
                destination.value,
            )
            raise PartialTransferFailure(snippet, source, destination) from exc
        self._tiers[destination] = updated_destination
        logger.info("Moved snippet %s from %s to %s storage", snippet_id, source.value, destination.value)
        return snippet

    async def clear(self, tier: Tier) -> None:
        self._require_tier(tier)
        await self._persist(tier, [])
        self._tiers[tier] = []
        logger.info("Cleared %s storage", tier.value)

    def all_entries(self) -> List[TieredSnippet]:
        entries: List[TieredSnippet] = []
        for tier in Tier:
            entries.extend(TieredSnippet(snippet, tier) for snippet in self._require_tier(tier))
        return entries

    def snippets(self, tier: Tier) -> List[Snippet]:
        return list(self._require_tier(tier))

    def sorted_snippets(self, tier: Tier) -> List[Snippet]:
        """Snippets of ``tier``, most recent first."""
        return sorted(self._require_tier(tier), key=lambda snippet: snippet.created_at, reverse=True)

    def get(self, tier: Tier, snippet_id: str) -> Snippet:
        current = self._require_tier(tier)
        return current[self._require_index(tier, current, snippet_id)]

    def counts(self) -> dict[Tier, int]:
        return {tier: len(self._require_tier(tier)) for tier in Tier}

    async def storage_usage(self, tier: Tier) -> StorageUsage:
        quota = self.backend.quota_bytes(tier)
        if quota <= 0:
            raise InvalidSchema(f"Storage quota for {tier.value} is invalid")
        used = await self.backend.bytes_in_use(tier, None)
        if used < 0:
            raise InvalidSchema(f"Storage usage for {tier.value} is invalid")
        return StorageUsage(tier=tier, bytes_used=used, quota_bytes=quota)

    async def _persist(self, tier: Tier, snippets: Sequence[Snippet]) -> None:
        await self.backend.set(tier, {SNIPPETS_KEY: [snippet.to_record() for snippet in snippets]})

    def _require_tier(self, tier: Tier) -> List[Snippet]:
        try:
            return self._tiers[tier]
        except KeyError:
            raise RepositoryNotLoaded(f"{tier.value} storage has not been loaded") from None

    @staticmethod
    def _find_index(snippets: Sequence[Snippet], snippet_id: str) -> int | None:
        for index, snippet in enumerate(snippets):
            if snippet.id == snippet_id:
                return index
        return None

    def _require_index(self, tier: Tier, snippets: Sequence[Snippet], snippet_id: str) -> int:
        if not isinstance(snippet_id, str) or not snippet_id:
            raise InvalidArgument("Snippet id is required")
        index = self._find_index(snippets, snippet_id)
        if index is None:
            raise NotFound(tier, snippet_id)
        return index

    @staticmethod
    def _parse_entry(tier: Tier, position: int, entry: Any) -> Snippet:
        if not isinstance(entry, Mapping):
            raise InvalidSchema(f"Snippet entry {position} in {tier.value} storage is not an object")
        try:
            return Snippet.model_validate(entry)
        except ValidationError as exc:
            raise InvalidSchema(
                f"Snippet entry {position} in {tier.value} storage is invalid: {exc.error_count()} errors"
            ) from exc


__all__ = ["IdGenerator", "SnippetRepository", "StorageUsage", "generate_snippet_id"]
