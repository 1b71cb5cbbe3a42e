from __future__ import annotations

from dataclasses import dataclass


class RequestTokens:
    """Monotonic counter that decides which search result is still wanted.

    Every dispatched search takes a token from :meth:`issue`. Anything that
    should make an in-flight search irrelevant (a newer query, a tier switch,
    clearing the query) bumps the counter, and the older token stops being
    current.
    """

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> "SearchToken":
        self._latest += 1
        return SearchToken(self, self._latest)

    def invalidate(self) -> None:
        self._latest += 1


@dataclass(frozen=True, slots=True)
class SearchToken:
    source: RequestTokens
    value: int

    @property
    def is_current(self) -> bool:
        return self.source.latest == self.value


__all__ = ["RequestTokens", "SearchToken"]
