"""MCP server exposing n8n workflow management tools over stdio or Streamable HTTP."""

__version__ = "0.10.3"

SERVER_NAME = "n8n-workflow-builder"

__all__ = ["SERVER_NAME", "__version__"]
