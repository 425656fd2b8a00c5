"""Conversion of operation outcomes into MCP tool results.

Every operation returns a JSON-serializable payload or raises. This module turns
either outcome into the uniform ``CallToolResult`` envelope, so individual
operations never build content blocks themselves.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable
from typing import Any

import mcp.types as types

from n8n_workflow_builder.n8n import N8nApiError
from n8n_workflow_builder.utilities.logging import get_logger

logger = get_logger(__name__)


def success_result(payload: Any) -> types.CallToolResult:
    """Wrap a successful payload as pretty-printed JSON text."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
        isError=False,
    )


def error_result(message: str) -> types.CallToolResult:
    """Wrap a failure reason as an error-flagged result."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=f"Error: {message}")],
        isError=True,
    )


def describe_api_error(error: N8nApiError) -> str:
    if error.detail is None:
        return error.message
    if isinstance(error.detail, dict) and "message" in error.detail:
        return f"{error.message}: {error.detail['message']}"
    return f"{error.message}: {error.detail}"


async def run_operation(name: str, outcome: Awaitable[Any]) -> types.CallToolResult:
    """Await an operation and convert its outcome into a tool result.

    Upstream failures are reported back to the caller as error-flagged content
    rather than protocol errors, so the client can see and react to them.
    """
    try:
        payload = await outcome
    except N8nApiError as e:
        logger.warning(f"Operation {name} failed: {e.message} (status={e.status_code})")
        return error_result(describe_api_error(e))
    except Exception as e:
        logger.exception(f"Operation {name} raised an unexpected error")
        return error_result(str(e))
    return success_result(payload)
