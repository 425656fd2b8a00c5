"""Selection of a free listening port before the HTTP server binds."""

from __future__ import annotations

import logging

import anyio

from n8n_workflow_builder.server.errors import NoPortAvailableError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_MAX_ATTEMPTS = 10


async def is_port_available(port: int, host: str = DEFAULT_HOST) -> bool:
    """Return True if a TCP listener can currently be bound to ``host:port``.

    The probe listener is closed immediately; nothing stays bound.
    """
    try:
        listener = await anyio.create_tcp_listener(local_host=host, local_port=port)
    except OSError as e:
        logger.debug(f"Port {port} on {host} is unavailable: {e}")
        return False
    await listener.aclose()
    return True


async def find_available_port(
    preferred: int,
    host: str = DEFAULT_HOST,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> int:
    """Find the first port, starting at ``preferred``, that can be bound on ``host``.

    Ports ``preferred`` through ``preferred + max_attempts - 1`` are tried in order.
    There is an unavoidable window between this probe and the real bind in which
    another process may take the port.

    Args:
        preferred: The port to try first
        host: Host interface to probe
        max_attempts: Number of consecutive ports to try

    Returns:
        The first available port.

    Raises:
        NoPortAvailableError: If none of the candidate ports can be bound.
        ValueError: If ``max_attempts`` is smaller than 1.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for offset in range(max_attempts):
        port = preferred + offset
        if port > 65535:
            break
        if await is_port_available(port, host):
            if offset > 0:
                logger.info(f"Port {preferred} was in use, using port {port} instead")
            return port

    raise NoPortAvailableError(preferred, max_attempts)
