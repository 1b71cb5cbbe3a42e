from __future__ import annotations

from datetime import datetime, timezone
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..tier import Tier

MANUAL_SOURCE = "manual"


class Snippet(BaseModel):
    """Immutable captured or typed text record."""

    id: str = ""
    text: str = Field(min_length=1)
    source: str = Field(alias="url")
    created_at: datetime = Field(alias="date")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_missing_id(cls, value: object) -> object:
        # Legacy records carry no id, or a null one; repair assigns it later.
        return "" if value is None else value

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_record(self) -> dict[str, str]:
        """Serialise to the persisted ``{id, text, url, date}`` layout."""
        return {
            "id": self.id,
            "text": self.text,
            "url": self.source,
            "date": self.created_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        }


class TieredSnippet(NamedTuple):
    snippet: Snippet
    tier: Tier


__all__ = ["MANUAL_SOURCE", "Snippet", "Tier", "TieredSnippet"]
