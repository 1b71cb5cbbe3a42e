"""Fuzzy snippet search with stale-result suppression."""

from .engine import DEFAULT_THRESHOLD, SearchEngine, SearchHit
from .tokens import RequestTokens, SearchToken

__all__ = [
    "DEFAULT_THRESHOLD",
    "RequestTokens",
    "SearchEngine",
    "SearchHit",
    "SearchToken",
]
