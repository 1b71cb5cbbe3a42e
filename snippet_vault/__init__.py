"""Core package for the personal snippet vault."""

from .capture import PageContext, SnippetCapture
from .config import VaultSettings
from .coordinator import AreaCoordinator, SnippetView, StatusState
from .search import RequestTokens, SearchEngine, SearchHit, SearchToken
from .session import VaultSession
from .snippet import MANUAL_SOURCE, Snippet, SnippetRepository, StorageUsage, TieredSnippet
from .storage import JsonFileStorageBackend, MemoryStorageBackend, RedisStorageBackend
from .tier import Tier

__all__ = [
    "AreaCoordinator",
    "JsonFileStorageBackend",
    "MANUAL_SOURCE",
    "MemoryStorageBackend",
    "PageContext",
    "RedisStorageBackend",
    "RequestTokens",
    "SearchEngine",
    "SearchHit",
    "SearchToken",
    "Snippet",
    "SnippetCapture",
    "SnippetRepository",
    "SnippetView",
    "StatusState",
    "StorageUsage",
    "Tier",
    "TieredSnippet",
    "VaultSession",
    "VaultSettings",
]
