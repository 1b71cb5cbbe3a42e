"""Session-level coordination between the repository, search and the view."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

from ..errors import PartialTransferFailure, StorageError, VaultError
from ..search.engine import SearchEngine, SearchHit
from ..search.tokens import RequestTokens
from ..snippet.model import MANUAL_SOURCE, Snippet, TieredSnippet
from ..snippet.repository import SnippetRepository
from ..tier import Tier
from .view import SnippetView, StatusState

logger = logging.getLogger("snippet_vault")

SEARCH_TITLE = "Search results"
NO_MATCHES_MESSAGE = "No matches in local or synced snippets."


class AreaCoordinator:
    """Track the active tier and the add target, and keep the view in sync.

    The coordinator owns the :class:`RequestTokens` used for searches. Any
    action that replaces what the view shows (a tier switch, a cleared query,
    a mutation followed by a re-render) invalidates in-flight searches so a
    late result can never overwrite it.
    """

    def __init__(
        self,
        repository: SnippetRepository,
        engine: SearchEngine,
        view: SnippetView,
        *,
        tokens: RequestTokens | None = None,
        active_tier: Tier = Tier.LOCAL,
    ) -> None:
        self.repository = repository
        self.engine = engine
        self.view = view
        self.tokens = tokens or RequestTokens()
        self._active_tier = active_tier
        self._add_target = active_tier
        self._add_panel_open = False

    @property
    def active_tier(self) -> Tier:
        return self._active_tier

    @property
    def add_target(self) -> Tier:
        return self._add_target

    @property
    def add_panel_open(self) -> bool:
        return self._add_panel_open

    async def initialize(self) -> None:
        self.view.set_status("", StatusState.IDLE)
        with self._reporting():
            await self.repository.open()
        await self.set_active_tier(self._active_tier)

    async def set_active_tier(self, tier: Tier) -> None:
        self._active_tier = tier
        self.tokens.invalidate()
        if self._add_panel_open:
            self.set_add_target(tier)
        await self._render_active()

    async def refresh_display(self) -> None:
        self.tokens.invalidate()
        await self._render_active()

    async def filter(self, query: str) -> List[SearchHit] | None:
        """Show the sorted active tier for a blank query, ranked hits otherwise.

        Returns the rendered hits, or ``None`` when nothing was searched or the
        result was superseded by a newer request.
        """
        normalized = query.strip()
        if not normalized:
            self.tokens.invalidate()
            self.view.set_status("", StatusState.IDLE)
            self._render_sorted()
            return None

        token = self.tokens.issue()
        self.view.set_status("Searching...", StatusState.LOADING)
        try:
            hits = await self.engine.search(normalized, token)
        except Exception as exc:
            self.view.set_status(str(exc) or "Search failed.", StatusState.ERROR)
            logger.exception("Search for %r failed", normalized)
            raise

        if hits is None:
            return None

        self.view.set_status("", StatusState.IDLE)
        if not hits:
            self.view.show_empty(SEARCH_TITLE, NO_MATCHES_MESSAGE)
        else:
            self.view.show_snippets(SEARCH_TITLE, [TieredSnippet(hit.snippet, hit.tier) for hit in hits])
        return hits

    def open_add_panel(self) -> None:
        self._add_panel_open = True
        self.set_add_target(self._active_tier)

    def close_add_panel(self) -> None:
        self._add_panel_open = False
        self.view.show_add_panel(False, self._add_target)
        self.view.set_status("", StatusState.IDLE)

    def toggle_add_panel(self) -> None:
        if self._add_panel_open:
            self.close_add_panel()
        else:
            self.open_add_panel()

    def set_add_target(self, tier: Tier) -> None:
        self._add_target = tier
        self.view.show_add_panel(self._add_panel_open, tier)

    async def add_manual(self, text: str) -> Snippet:
        target = self._add_target
        with self._reporting():
            snippet = self.repository.create_snippet(text, MANUAL_SOURCE)
            await self.repository.append(target, snippet)
        self.close_add_panel()
        await self.set_active_tier(target)
        return snippet

    def copy(self, tier: Tier, snippet_id: str) -> str:
        with self._reporting():
            snippet = self.repository.get(tier, snippet_id)
        self.view.copy_text(snippet.text)
        return snippet.text

    async def delete(self, tier: Tier, snippet_id: str) -> Snippet:
        with self._reporting():
            removed = await self.repository.remove(tier, snippet_id)
        await self.refresh_display()
        return removed

    async def move(self, tier: Tier, snippet_id: str) -> Snippet:
        with self._reporting():
            try:
                moved = await self.repository.transfer(tier, snippet_id, tier.other)
            except PartialTransferFailure:
                await self._reload_after_divergence()
                raise
        await self.refresh_display()
        return moved

    async def clear_active(self) -> bool:
        tier = self._active_tier
        if not await self.view.confirm(f"Are you sure you want to delete all {tier.label.lower()} snippets?"):
            return False
        with self._reporting():
            await self.repository.clear(tier)
        await self.refresh_display()
        return True

    async def _render_active(self) -> None:
        tier = self._active_tier
        self.view.show_tabs(tier, self.repository.counts())
        with self._reporting():
            usage = await self.repository.storage_usage(tier)
        self.view.show_storage(usage)
        self._render_sorted()
        self.view.clear_query()
        self.view.set_status("", StatusState.IDLE)

    def _render_sorted(self) -> None:
        tier = self._active_tier
        title = f"{tier.label} snippets"
        snippets = self.repository.sorted_snippets(tier)
        if not snippets:
            self.view.show_empty(
                title,
                f"No {tier.label.lower()} snippets yet. Save a selection to start building your vault.",
            )
            return
        self.view.show_snippets(title, [TieredSnippet(snippet, tier) for snippet in snippets])

    async def _reload_after_divergence(self) -> None:
        for tier in Tier:
            try:
                await self.repository.refresh(tier)
            except StorageError:
                logger.exception("Failed to reload %s storage after a partial transfer", tier.value)

    @contextmanager
    def _reporting(self) -> Iterator[None]:
        try:
            yield
        except VaultError as exc:
            self.view.set_status(str(exc), StatusState.ERROR)
            logger.warning("%s: %s", type(exc).__name__, exc)
            raise


__all__ = ["AreaCoordinator", "NO_MATCHES_MESSAGE", "SEARCH_TITLE"]
