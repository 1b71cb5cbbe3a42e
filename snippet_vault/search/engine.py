"""Fuzzy search across both snippet tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from rapidfuzz import fuzz
from rapidfuzz.utils import default_process

from ..errors import InvalidArgument
from ..snippet.model import Snippet, TieredSnippet
from ..snippet.repository import SnippetRepository
from ..tier import Tier
from .tokens import SearchToken

logger = logging.getLogger("snippet_vault")

DEFAULT_THRESHOLD = 0.4


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A ranked match; ``score`` is 0 for a perfect hit and 1 for none."""

    snippet: Snippet
    tier: Tier
    score: float


def normalize_query(query: str) -> str:
    if not isinstance(query, str):
        raise InvalidArgument("Search query must be a string")
    normalized = query.strip()
    if not normalized:
        raise InvalidArgument("Search query is required")
    return normalized


def score_text(query: str, text: str) -> float:
    """Dissimilarity between ``query`` and the best-matching part of ``text``.

    When the query fits inside the text, ``partial_ratio`` aligns it against
    every window of the text, so where the match sits does not matter and an
    exact substring hit scores 0. A query longer than the text is compared
    against the whole text instead; otherwise a short snippet occurring
    inside the query would count as a perfect hit.
    """
    processed_query = default_process(query)
    processed_text = default_process(text)
    if len(processed_query) <= len(processed_text):
        similarity = fuzz.partial_ratio(processed_query, processed_text)
    else:
        similarity = fuzz.ratio(processed_query, processed_text)
    return 1.0 - similarity / 100.0


class SearchEngine:
    """Rank snippets from both tiers against a free-text query.

    The index is rebuilt from :meth:`SnippetRepository.all_entries` on every
    call, so results never lag behind the repository. A search whose token
    has been superseded by the time scoring finishes returns ``None``.
    """

    def __init__(self, repository: SnippetRepository, *, threshold: float = DEFAULT_THRESHOLD) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise InvalidArgument("Search threshold must be between 0 and 1")
        self.repository = repository
        self.threshold = threshold

    async def search(self, query: str, token: SearchToken) -> List[SearchHit] | None:
        normalized = normalize_query(query)
        entries = self.repository.all_entries()
        try:
            hits = await self._compute(normalized, entries)
        except Exception:
            if not token.is_current:
                logger.debug("Discarding failed search for superseded request %d", token.value)
                return None
            raise

        if not token.is_current:
            logger.debug("Discarding results for superseded request %d", token.value)
            return None
        return hits

    async def _compute(self, query: str, entries: Sequence[TieredSnippet]) -> List[SearchHit]:
        return self.rank(query, entries)

    def rank(self, query: str, entries: Sequence[TieredSnippet]) -> List[SearchHit]:
        hits: List[SearchHit] = []
        for snippet, tier in entries:
            score = score_text(query, snippet.text)
            if score <= self.threshold:
                hits.append(SearchHit(snippet=snippet, tier=tier, score=score))
        hits.sort(key=lambda hit: (hit.score, -hit.snippet.created_at.timestamp()))
        return hits


__all__ = ["DEFAULT_THRESHOLD", "SearchEngine", "SearchHit", "normalize_query", "score_text"]
