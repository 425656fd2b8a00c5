"""Orderly shutdown: close every live session before the server stops listening."""

from __future__ import annotations

import asyncio
import logging
import signal
import socket
from types import FrameType
from typing import TYPE_CHECKING

import anyio
import uvicorn

from n8n_workflow_builder.server.session_store import SessionStore

if TYPE_CHECKING:
    from n8n_workflow_builder.server.router import SessionRouter
    from n8n_workflow_builder.server.session_transport import SessionTransport

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_TIMEOUT = 5.0


async def drain_sessions(store: SessionStore, *, timeout: float = DEFAULT_CLOSE_TIMEOUT) -> int:
    """Close every session present in ``store`` when called.

    Sessions are closed concurrently, each bounded by ``timeout`` seconds. A
    failing or hung close is logged and does not affect the others. Every drained
    entry is removed from the store, whether or not its close succeeded.

    Returns:
        The number of sessions that were drained.
    """
    drained = 0

    async def close_one(session_id: str, transport: SessionTransport) -> None:
        nonlocal drained
        logger.info(f"Closing transport for session {session_id}")
        with anyio.move_on_after(timeout) as scope:
            try:
                await transport.close("server shutdown")
            except Exception:
                logger.exception(f"Error closing transport for session {session_id}")
        if scope.cancelled_caught:
            logger.warning(f"Timed out after {timeout}s closing transport for session {session_id}")
        store.delete(session_id)
        drained += 1

    async with anyio.create_task_group() as tg:
        store.for_each(lambda session_id, transport: tg.start_soon(close_one, session_id, transport))

    if drained:
        logger.info(f"Closed {drained} session(s)")
    return drained


class DrainingServer(uvicorn.Server):
    """uvicorn server that drains MCP sessions before it stops accepting connections.

    The first SIGINT or SIGTERM closes every live session and then lets uvicorn
    shut down normally, which releases the listening socket. A second signal
    received while draining only asks uvicorn to exit without waiting further;
    closing sessions is idempotent, so the overlap is harmless.
    """

    def __init__(self, config: uvicorn.Config, router: SessionRouter):
        super().__init__(config)
        self.router = router
        self._loop: asyncio.AbstractEventLoop | None = None
        self._draining = False
        self._drain_task: asyncio.Task[None] | None = None

    async def serve(self, sockets: list[socket.socket] | None = None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        name = signal.Signals(sig).name
        if self._loop is None or self._draining:
            logger.info(f"Received {name}, exiting")
            self.should_exit = True
            return
        self._draining = True
        logger.info(f"Received {name}, shutting down gracefully...")
        # signal handlers may interrupt the loop at any point; hand over to it
        self._loop.call_soon_threadsafe(self._start_drain)

    def _start_drain(self) -> None:
        self._drain_task = asyncio.ensure_future(self._drain_then_exit())

    async def _drain_then_exit(self) -> None:
        try:
            await self.router.drain()
        finally:
            self.should_exit = True
