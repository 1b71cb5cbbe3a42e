from __future__ import annotations

from enum import Enum
from typing import Mapping, Protocol, Sequence

from ..snippet.model import TieredSnippet
from ..snippet.repository import StorageUsage
from ..tier import Tier


class StatusState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class SnippetView(Protocol):
    """Rendering collaborator driven by :class:`AreaCoordinator`."""

    def set_status(self, message: str, state: StatusState) -> None: ...

    def show_snippets(self, title: str, items: Sequence[TieredSnippet]) -> None: ...

    def show_empty(self, title: str, message: str) -> None: ...

    def show_tabs(self, active: Tier, counts: Mapping[Tier, int]) -> None: ...

    def show_storage(self, usage: StorageUsage) -> None: ...

    def show_add_panel(self, is_open: bool, target: Tier) -> None: ...

    def clear_query(self) -> None: ...

    def copy_text(self, text: str) -> None: ...

    async def confirm(self, message: str) -> bool: ...


__all__ = ["SnippetView", "StatusState"]
