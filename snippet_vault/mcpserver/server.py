"""FastMCP server exposing snippet vault helpers as MCP tools."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from ..api.model import SnippetCreateRequest
from ..api.service import create_snippet_service, search_snippets_service
from ..config import VaultSettings
from ..session import VaultSession
from ..tier import Tier

logger = logging.getLogger("snippet_vault")


class ServiceContext:
    """Lazy session holder for MCP tool handlers."""

    def __init__(self, session: VaultSession | None = None) -> None:
        self._session = session

    async def session(self) -> VaultSession:
        if self._session is None:
            self._session = VaultSession.from_settings(VaultSettings.from_env())
        if not self._session.repository.is_loaded:
            await self._session.open()
        return self._session


def _handle_http_exception(exc: HTTPException, *, default_message: str) -> ToolError:
    detail = exc.detail if isinstance(exc.detail, str) else None
    message = detail or default_message
    return ToolError(message)


def _handle_generic_exception(exc: Exception, *, default_message: str) -> ToolError:
    logger.exception(default_message)
    return ToolError(f"{default_message}: {exc}")


def create_server(session: VaultSession | None = None) -> FastMCP:
    """Create a FastMCP server wired to the snippet vault services."""

    services = ServiceContext(session)
    server = FastMCP("Snippet Vault MCP Server")

    @server.tool(
        name="search",
        description=(
            "Fuzzy-search saved text snippets across both the local and synced tiers."
            " Results are ranked best match first, most recent first on ties."
            " `limit` defaults to 10 and is capped at 50."
        ),
        tags={"snippets", "search"},
    )
    async def search(query: str, limit: int = 10) -> Dict[str, Any]:
        """Search stored snippets and return ranked results."""
        if not query or not query.strip():
            raise ToolError("Query text is required.")

        normalized_limit = limit or 10
        if normalized_limit <= 0:
            raise ToolError("Limit must be a positive integer.")
        if normalized_limit > 50:
            normalized_limit = 50

        try:
            vault = await services.session()
            response = await search_snippets_service(query, normalized_limit, vault.engine)
        except HTTPException as exc:
            raise _handle_http_exception(exc, default_message="Snippet search failed")
        except Exception as exc:
            raise _handle_generic_exception(exc, default_message="Snippet search failed")

        return response.model_dump(mode="json")

    @server.tool(
        name="save_snippet",
        description="Save a new text snippet to the `local` (default) or `sync` tier.",
        tags={"snippets"},
    )
    async def save_snippet(text: str, tier: str = Tier.LOCAL.value) -> Dict[str, Any]:
        """Store a hand-entered snippet."""
        try:
            target = Tier(tier.strip().lower())
        except ValueError:
            raise ToolError(f"Unsupported storage tier: {tier}") from None
        if not text or not text.strip():
            raise ToolError("Snippet text is required.")

        try:
            vault = await services.session()
            response = await create_snippet_service(
                SnippetCreateRequest(text=text, tier=target),
                vault.repository,
            )
        except HTTPException as exc:
            raise _handle_http_exception(exc, default_message="Saving snippet failed")
        except Exception as exc:
            raise _handle_generic_exception(exc, default_message="Saving snippet failed")

        return response.model_dump(mode="json")

    return server


__all__ = ["ServiceContext", "create_server"]
