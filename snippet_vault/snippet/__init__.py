"""Snippet data model and the tier repository."""

from .model import MANUAL_SOURCE, Snippet, Tier, TieredSnippet
from .repository import SnippetRepository, StorageUsage, generate_snippet_id

__all__ = [
    "MANUAL_SOURCE",
    "Snippet",
    "SnippetRepository",
    "StorageUsage",
    "Tier",
    "TieredSnippet",
    "generate_snippet_id",
]
