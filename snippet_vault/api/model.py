"""Pydantic models for the public API surface."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..search.engine import SearchHit
from ..snippet.model import Snippet
from ..snippet.repository import StorageUsage
from ..tier import Tier


class SnippetCreateRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Snippet text to store")
    tier: Tier = Field(Tier.LOCAL, description="Storage tier to save the snippet to")


class SnippetResponse(BaseModel):
    id: str
    text: str
    url: str
    date: str
    tier: Tier

    @classmethod
    def from_snippet(cls, snippet: Snippet, tier: Tier) -> "SnippetResponse":
        record = snippet.to_record()
        return cls(tier=tier, **record)


class SnippetListResponse(BaseModel):
    tier: Tier
    count: int
    results: List[SnippetResponse]


class SearchHitResponse(SnippetResponse):
    score: Optional[float] = None

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "SearchHitResponse":
        return cls(tier=hit.tier, score=hit.score, **hit.snippet.to_record())


class SnippetSearchResponse(BaseModel):
    query: str
    results: List[SearchHitResponse]


class StorageUsageResponse(BaseModel):
    tier: Tier
    bytes_used: int
    quota_bytes: int
    used_kb: float
    limit_kb: float

    @classmethod
    def from_usage(cls, usage: StorageUsage) -> "StorageUsageResponse":
        return cls(
            tier=usage.tier,
            bytes_used=usage.bytes_used,
            quota_bytes=usage.quota_bytes,
            used_kb=round(usage.used_kb, 2),
            limit_kb=round(usage.limit_kb, 2),
        )


__all__ = [
    "SearchHitResponse",
    "SnippetCreateRequest",
    "SnippetListResponse",
    "SnippetResponse",
    "SnippetSearchResponse",
    "StorageUsageResponse",
]
