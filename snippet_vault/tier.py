from __future__ import annotations

from enum import Enum


class Tier(str, Enum):
    """One of the two independent snippet containers."""

    LOCAL = "local"
    SYNC = "sync"

    @property
    def label(self) -> str:
        return "Local" if self is Tier.LOCAL else "Synced"

    @property
    def other(self) -> "Tier":
        return Tier.SYNC if self is Tier.LOCAL else Tier.LOCAL


__all__ = ["Tier"]
