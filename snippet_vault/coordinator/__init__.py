"""Area coordination and the view contract it drives."""

from .area import AreaCoordinator
from .view import SnippetView, StatusState

__all__ = ["AreaCoordinator", "SnippetView", "StatusState"]
