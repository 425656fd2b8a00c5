"""Starlette application exposing health, service descriptor and the MCP endpoint."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from http import HTTPStatus

from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from n8n_workflow_builder import SERVER_NAME, __version__
from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.server.router import SessionRouter
from n8n_workflow_builder.settings import Settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings, router: SessionRouter, client: N8nClient | None = None) -> Starlette:
    """Build the HTTP application.

    ``/health``, ``/`` and the MCP path are the only routes. Anything else falls
    through to the 404 handler, which Starlette consults only after no route
    matched, so the fallback can never answer a request meant for the MCP path.
    The application lifespan runs the session router and closes ``client``.
    """
    endpoints = {"health": "/health", "mcp": settings.mcp_path}

    async def health(request: Request) -> Response:
        return JSONResponse(
            {
                "status": "healthy",
                "service": SERVER_NAME,
                "version": __version__,
                "n8nHost": settings.n8n_host,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "activeSessions": len(router.store),
            }
        )

    async def root(request: Request) -> Response:
        return JSONResponse(
            {
                "service": "N8N Workflow Builder MCP Server",
                "version": __version__,
                "description": "HTTP-enabled MCP server for n8n workflow management",
                "endpoints": endpoints,
                "transport": "HTTP (Streamable)",
                "n8nHost": settings.n8n_host,
            }
        )

    async def not_found(request: Request, exc: HTTPException) -> Response:
        return JSONResponse(
            {
                "error": "Not Found",
                "message": f"Cannot {request.method} {request.url.path}",
                "endpoints": endpoints,
            },
            status_code=exc.status_code,
        )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with router.run():
            logger.info(f"N8N Workflow Builder HTTP Server v{__version__} ready")
            try:
                yield
            finally:
                if client is not None:
                    await client.aclose()

    routes = [
        Route("/health", endpoint=health, methods=["GET"]),
        Route("/", endpoint=root, methods=["GET"]),
        Route(settings.mcp_path, endpoint=router, methods=["GET", "POST", "DELETE"]),
    ]
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=[MCP_SESSION_ID_HEADER],
        )
    ]

    return Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers={HTTPStatus.NOT_FOUND.value: not_found},
        lifespan=lifespan,
    )
