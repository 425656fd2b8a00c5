"""Command line entry point: serve the n8n tools over stdio or Streamable HTTP."""

from __future__ import annotations

import functools
import logging
from typing import Literal

import anyio
import click
import uvicorn
from mcp.server.stdio import stdio_server

from n8n_workflow_builder import __version__
from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations import build_registry
from n8n_workflow_builder.server import (
    DrainingServer,
    NoPortAvailableError,
    SessionRouter,
    create_app,
    create_engine,
    find_available_port,
)
from n8n_workflow_builder.settings import Settings
from n8n_workflow_builder.utilities.logging import configure_logging, mask_secret

logger = logging.getLogger(__name__)


async def serve_stdio(settings: Settings) -> None:
    """Serve a single MCP session over stdin/stdout."""
    async with N8nClient(settings.n8n_host, settings.n8n_api_key, timeout=settings.n8n_timeout) as client:
        engine = create_engine(build_registry(client))
        async with stdio_server() as (read_stream, write_stream):
            await engine.run(read_stream, write_stream, engine.create_initialization_options())


async def serve_http(settings: Settings) -> None:
    """Serve the Streamable HTTP endpoint until a termination signal drains it."""
    port = await find_available_port(settings.preferred_port, settings.host, settings.max_port_attempts)

    client = N8nClient(settings.n8n_host, settings.n8n_api_key, timeout=settings.n8n_timeout)
    registry = build_registry(client)
    router = SessionRouter(
        functools.partial(create_engine, registry),
        json_response=settings.json_response,
        close_timeout=settings.session_close_timeout,
    )
    app = create_app(settings, router, client)

    config = uvicorn.Config(app, host=settings.host, port=port, log_level=settings.log_level.lower())
    server = DrainingServer(config, router)
    logger.info(f"Health check: http://localhost:{port}/health")
    logger.info(f"MCP endpoint: http://localhost:{port}{settings.mcp_path}")
    logger.info(f"{len(registry)} tools available")
    await server.serve()


@click.command()
@click.version_option(__version__, prog_name="n8n-workflow-builder")
@click.option(
    "--transport",
    type=click.Choice(["auto", "stdio", "http"]),
    default="auto",
    show_default=True,
    help="Transport to serve. 'auto' picks HTTP when USE_HTTP, PORT or RAILWAY_ENVIRONMENT is set.",
)
@click.option("--host", default=None, help="Interface to bind in HTTP mode [env: HOST]")
@click.option("--port", type=int, default=None, help="Preferred port in HTTP mode [env: PORT]")
@click.option("--json-response", is_flag=True, help="Answer with JSON instead of SSE streams [env: JSON_RESPONSE]")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Logging level [env: LOG_LEVEL]",
)
def main(
    transport: Literal["auto", "stdio", "http"],
    host: str | None,
    port: int | None,
    json_response: bool,
    log_level: str | None,
) -> None:
    """Run the n8n workflow builder MCP server."""
    overrides = {
        "host": host,
        "port": port,
        "json_response": True if json_response else None,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    configure_logging(settings.log_level)

    mode = settings.transport_mode() if transport == "auto" else transport
    logger.info("N8N Workflow Builder")
    logger.info(f"N8N API host: {settings.n8n_host}")
    logger.info(f"N8N API key: {mask_secret(settings.n8n_api_key)}")

    if mode == "stdio":
        logger.info("Starting N8N Workflow Builder in stdio mode...")
        anyio.run(serve_stdio, settings)
        return

    logger.info("Starting N8N Workflow Builder in HTTP mode...")
    try:
        anyio.run(serve_http, settings)
    except NoPortAvailableError as e:
        raise click.ClickException(str(e)) from e
