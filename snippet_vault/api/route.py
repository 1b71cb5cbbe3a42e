"""FastAPI routes for browsing, searching and managing snippets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..search.engine import SearchEngine
from ..session import VaultSession
from ..snippet.repository import SnippetRepository
from ..tier import Tier
from .model import (
    SnippetCreateRequest,
    SnippetListResponse,
    SnippetResponse,
    SnippetSearchResponse,
    StorageUsageResponse,
)
from .service import (
    clear_snippets_service,
    create_snippet_service,
    delete_snippet_service,
    list_snippets_service,
    move_snippet_service,
    search_snippets_service,
    storage_usage_service,
)


def get_session(request: Request) -> VaultSession:
    session = getattr(request.app.state, "session", None)
    if not isinstance(session, VaultSession):
        raise RuntimeError("Vault session has not been initialised")
    return session


def get_repository(session: VaultSession = Depends(get_session)) -> SnippetRepository:
    return session.repository


def get_engine(session: VaultSession = Depends(get_session)) -> SearchEngine:
    return session.engine


router = APIRouter()


@router.get("/snippets/search", response_model=SnippetSearchResponse)
async def search_snippets(
    query: str = Query(..., description="Free-text search query; blank lists `tier` newest first"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of results to return"),
    tier: Tier = Query(Tier.LOCAL, description="Tier listed when the query is blank"),
    engine: SearchEngine = Depends(get_engine),
) -> SnippetSearchResponse:
    return await search_snippets_service(query, limit, engine, tier)


@router.get("/snippets", response_model=SnippetListResponse)
async def list_snippets(
    tier: Tier = Query(Tier.LOCAL, description="Storage tier to list, most recent first"),
    repository: SnippetRepository = Depends(get_repository),
) -> SnippetListResponse:
    return list_snippets_service(tier, repository)


@router.post("/snippets", response_model=SnippetResponse, status_code=status.HTTP_201_CREATED)
async def create_snippet(
    payload: SnippetCreateRequest,
    repository: SnippetRepository = Depends(get_repository),
) -> SnippetResponse:
    return await create_snippet_service(payload, repository)


@router.delete("/snippets/{tier}/{snippet_id}", response_class=Response)
async def delete_snippet(
    tier: Tier,
    snippet_id: str,
    repository: SnippetRepository = Depends(get_repository),
) -> Response:
    await delete_snippet_service(tier, snippet_id, repository)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/snippets/{tier}/{snippet_id}/move", response_model=SnippetResponse)
async def move_snippet(
    tier: Tier,
    snippet_id: str,
    repository: SnippetRepository = Depends(get_repository),
) -> SnippetResponse:
    """Move a snippet to the other tier."""

    return await move_snippet_service(tier, snippet_id, repository)


@router.delete("/snippets/{tier}", response_class=Response)
async def clear_snippets(
    tier: Tier,
    repository: SnippetRepository = Depends(get_repository),
) -> Response:
    await clear_snippets_service(tier, repository)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/storage/{tier}", response_model=StorageUsageResponse)
async def storage_usage(
    tier: Tier,
    repository: SnippetRepository = Depends(get_repository),
) -> StorageUsageResponse:
    return await storage_usage_service(tier, repository)


__all__ = ["router"]
