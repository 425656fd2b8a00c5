"""Protocol engine construction: an MCP server backed by the operation registry."""

from __future__ import annotations

from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server

from n8n_workflow_builder import SERVER_NAME, __version__
from n8n_workflow_builder.operations import OperationRegistry


def create_engine(registry: OperationRegistry, *, name: str = SERVER_NAME, version: str = __version__) -> Server:
    """Build a low-level MCP server that lists and calls the registry's operations.

    The engine keeps no per-session state of its own beyond what the MCP server
    tracks, so one is built for every HTTP session and one for stdio.
    """
    server: Server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return registry.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await registry.invoke(name, arguments)

    return server
