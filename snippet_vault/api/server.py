"""FastAPI application factory for the snippet vault service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ..config import VaultSettings
from ..logging_setup import configure_logging
from ..mcpserver import create_server
from ..session import VaultSession
from ..storage.base import StorageBackend
from .route import router


def create_app(
    settings: VaultSettings | None = None,
    *,
    backend: StorageBackend | None = None,
    mount_mcp: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or VaultSettings.from_env()
    session = VaultSession.from_settings(settings, backend=backend)

    # setup mcp
    mcp_app = create_server(session).http_app("/") if mount_mcp else None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        await session.open()
        try:
            if mcp_app is None:
                yield
            else:
                async with mcp_app.lifespan(app):
                    yield
        finally:
            await session.close()

    app = FastAPI(
        title="Snippet Vault API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session = session
    app.include_router(router)

    # mount mcp
    if mcp_app is not None:
        app.mount("/mcp", mcp_app)

    return app


__all__ = ["create_app"]
