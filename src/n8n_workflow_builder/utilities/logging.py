"""Logging utilities for the n8n workflow builder."""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under the package namespace.

    Args:
        name: the name of the logger, usually ``__name__``

    Returns:
        a configured logger instance
    """
    return logging.getLogger(name)


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for the server.

    Output goes to stderr so that stdout stays reserved for the stdio transport.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Return a printable form of a secret that only reveals its first characters.

    >>> mask_secret("n8n_api_1234")
    'n8n_****'
    >>> mask_secret("")
    'Not set'
    """
    if not value:
        return "Not set"
    return f"{value[:visible]}****"
