"""Save page selections into the local tier."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .errors import InvalidArgument
from .snippet.model import Snippet
from .snippet.repository import SnippetRepository
from .tier import Tier

logger = logging.getLogger("snippet_vault")

CAPTURE_TIER = Tier.LOCAL


@dataclass(frozen=True, slots=True)
class PageContext:
    """The page a capture was triggered from."""

    page_id: int | None
    url: str | None


class SelectionSource(Protocol):
    async def selected_text(self, page_id: int) -> str:
        """Return the page's current selection, raising if there is none."""
        ...


class CaptureNotifier(Protocol):
    async def snippet_saved(self, page_id: int, text: str) -> None: ...


class SnippetCapture:
    """Turn a "save as snippet" action into a new local-tier snippet."""

    def __init__(
        self,
        repository: SnippetRepository,
        selection_source: SelectionSource,
        *,
        notifier: CaptureNotifier | None = None,
    ) -> None:
        self.repository = repository
        self.selection_source = selection_source
        self.notifier = notifier

    async def save_selection(self, page: PageContext, selection_text: str | None = None) -> Snippet:
        text = selection_text if isinstance(selection_text, str) else ""
        if not text.strip():
            if page.page_id is None:
                raise InvalidArgument("Page id is required to read the selection")
            text = await self.selection_source.selected_text(page.page_id)
        if not isinstance(text, str) or not text.strip():
            raise InvalidArgument("Selected text is required to save a snippet")
        if not page.url:
            raise InvalidArgument("Page URL is required to save a snippet")
        if page.page_id is None:
            raise InvalidArgument("Page id is required to save a snippet")

        # Another session may have written the tier since it was loaded.
        await self.repository.refresh(CAPTURE_TIER)
        snippet = self.repository.create_snippet(text, page.url)
        await self.repository.append(CAPTURE_TIER, snippet)

        if self.notifier is not None:
            try:
                await self.notifier.snippet_saved(page.page_id, snippet.text)
            except Exception as exc:
                logger.warning("Capture notification failed: %s", exc)
        return snippet


__all__ = ["CAPTURE_TIER", "CaptureNotifier", "PageContext", "SelectionSource", "SnippetCapture"]
