"""Service-layer helpers for snippet browsing, search and mutation."""

from __future__ import annotations

import logging
from typing import List

from fastapi import HTTPException

from ..errors import (
    DuplicateAcrossTiers,
    DuplicateId,
    InvalidArgument,
    NotFound,
    PartialTransferFailure,
    StorageError,
    VaultError,
)
from ..search.engine import SearchEngine
from ..search.tokens import RequestTokens
from ..snippet.model import MANUAL_SOURCE
from ..snippet.repository import SnippetRepository
from ..tier import Tier
from .model import (
    SearchHitResponse,
    SnippetCreateRequest,
    SnippetListResponse,
    SnippetResponse,
    SnippetSearchResponse,
    StorageUsageResponse,
)

logger = logging.getLogger("snippet_vault")


def vault_error_status(exc: VaultError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, (DuplicateId, DuplicateAcrossTiers)):
        return 409
    if isinstance(exc, InvalidArgument):
        return 400
    if isinstance(exc, StorageError):
        return 503
    return 500


def to_http_exception(exc: VaultError) -> HTTPException:
    status_code = vault_error_status(exc)
    if status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc)
    return HTTPException(status_code=status_code, detail=str(exc) or type(exc).__name__)


def list_snippets_service(tier: Tier, repository: SnippetRepository) -> SnippetListResponse:
    try:
        snippets = repository.sorted_snippets(tier)
    except VaultError as exc:
        raise to_http_exception(exc) from exc
    return SnippetListResponse(
        tier=tier,
        count=len(snippets),
        results=[SnippetResponse.from_snippet(snippet, tier) for snippet in snippets],
    )


async def search_snippets_service(
    query: str,
    limit: int,
    engine: SearchEngine,
    tier: Tier = Tier.LOCAL,
) -> SnippetSearchResponse:
    if not query.strip():
        # A blank query shows the tier in recency order, unscored.
        try:
            snippets = engine.repository.sorted_snippets(tier)
        except VaultError as exc:
            raise to_http_exception(exc) from exc
        return SnippetSearchResponse(
            query="",
            results=[SearchHitResponse(tier=tier, **snippet.to_record()) for snippet in snippets[:limit]],
        )

    # Each HTTP request is its own caller, so its token is never superseded.
    token = RequestTokens().issue()
    try:
        hits = await engine.search(query, token)
    except VaultError as exc:
        raise to_http_exception(exc) from exc
    results: List[SearchHitResponse] = [SearchHitResponse.from_hit(hit) for hit in (hits or [])[:limit]]
    return SnippetSearchResponse(query=query.strip(), results=results)


async def create_snippet_service(
    payload: SnippetCreateRequest,
    repository: SnippetRepository,
) -> SnippetResponse:
    try:
        snippet = repository.create_snippet(payload.text, MANUAL_SOURCE)
        await repository.append(payload.tier, snippet)
    except VaultError as exc:
        raise to_http_exception(exc) from exc
    return SnippetResponse.from_snippet(snippet, payload.tier)


async def delete_snippet_service(tier: Tier, snippet_id: str, repository: SnippetRepository) -> None:
    try:
        await repository.remove(tier, snippet_id)
    except VaultError as exc:
        raise to_http_exception(exc) from exc


async def move_snippet_service(tier: Tier, snippet_id: str, repository: SnippetRepository) -> SnippetResponse:
    destination = tier.other
    try:
        snippet = await repository.transfer(tier, snippet_id, destination)
    except PartialTransferFailure as exc:
        await _reload_tiers(repository)
        raise to_http_exception(exc) from exc
    except VaultError as exc:
        raise to_http_exception(exc) from exc
    return SnippetResponse.from_snippet(snippet, destination)


async def _reload_tiers(repository: SnippetRepository) -> None:
    for tier in Tier:
        try:
            await repository.refresh(tier)
        except StorageError:
            logger.exception("Failed to reload %s storage after a partial transfer", tier.value)


async def clear_snippets_service(tier: Tier, repository: SnippetRepository) -> None:
    try:
        await repository.clear(tier)
    except VaultError as exc:
        raise to_http_exception(exc) from exc


async def storage_usage_service(tier: Tier, repository: SnippetRepository) -> StorageUsageResponse:
    try:
        usage = await repository.storage_usage(tier)
    except VaultError as exc:
        raise to_http_exception(exc) from exc
    return StorageUsageResponse.from_usage(usage)


__all__ = [
    "clear_snippets_service",
    "create_snippet_service",
    "delete_snippet_service",
    "list_snippets_service",
    "move_snippet_service",
    "search_snippets_service",
    "storage_usage_service",
    "to_http_exception",
    "vault_error_status",
]
