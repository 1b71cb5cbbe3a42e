"""Error taxonomy for the snippet vault core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .snippet.model import Snippet, Tier


class VaultError(Exception):
    """Base class for every failure raised by the vault core.

    ``recoverable`` separates expected outcomes a caller can act on (a missing
    id, a duplicate, a storage hiccup) from contract violations that mean the
    persisted or in-memory state can no longer be trusted.
    """

    recoverable: bool = True


class StorageError(VaultError):
    """Base class for storage backend I/O failures."""


class StorageUnavailable(StorageError):
    pass


class StorageReadFailed(StorageError):
    pass


class StorageWriteFailed(StorageError):
    pass


class StorageRemoveFailed(StorageError):
    pass


class InvalidSchema(VaultError):
    """A stored tier value is not a list, or one of its entries is malformed."""

    recoverable = False


class MissingTier(VaultError):
    """A tier was read before it was initialised."""

    recoverable = False


class RepositoryNotLoaded(VaultError):
    """The repository was used before its load cycle completed."""

    recoverable = False


class NotFound(VaultError):
    def __init__(self, tier: "Tier", snippet_id: str) -> None:
        super().__init__(f"Snippet {snippet_id} not found in {tier.value} storage")
        self.tier = tier
        self.snippet_id = snippet_id


class DuplicateId(VaultError):
    def __init__(self, tier: "Tier", snippet_id: str) -> None:
        super().__init__(f"Snippet {snippet_id} already exists in {tier.value} storage")
        self.tier = tier
        self.snippet_id = snippet_id


class DuplicateAcrossTiers(VaultError):
    def __init__(self, tier: "Tier", snippet_id: str) -> None:
        super().__init__(f"Snippet {snippet_id} already exists in target {tier.value} storage")
        self.tier = tier
        self.snippet_id = snippet_id


class InvalidArgument(VaultError, ValueError):
    pass


class PartialTransferFailure(VaultError):
    """The source tier was written but the destination write failed.

    The snippet is gone from the source tier on disk and missing from the
    destination. Callers must reload both tiers before trusting any read.
    """

    recoverable = False

    def __init__(self, snippet: "Snippet", source: "Tier", destination: "Tier") -> None:
        super().__init__(
            f"Snippet {snippet.id} was removed from {source.value} storage "
            f"but could not be written to {destination.value} storage"
        )
        self.snippet = snippet
        self.source = source
        self.destination = destination


__all__ = [
    "VaultError",
    "StorageError",
    "StorageUnavailable",
    "StorageReadFailed",
    "StorageWriteFailed",
    "StorageRemoveFailed",
    "InvalidSchema",
    "MissingTier",
    "RepositoryNotLoaded",
    "NotFound",
    "DuplicateId",
    "DuplicateAcrossTiers",
    "InvalidArgument",
    "PartialTransferFailure",
]
