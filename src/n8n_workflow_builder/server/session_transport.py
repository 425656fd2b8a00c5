"""Per-client session: one Streamable HTTP channel bound to one protocol engine."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from mcp.server.transport_security import TransportSecuritySettings
from starlette.types import Receive, Scope, Send

from n8n_workflow_builder.server.errors import InvalidSessionError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    OPEN = "open"
    """Created and registered; the initialize handshake has not completed yet."""
    ACTIVE = "active"
    """Initialized; requests and tool calls are flowing."""
    CLOSED = "closed"
    """Terminal. The session accepts no further requests."""


class SessionObserver(Protocol):
    """Receives the lifecycle transitions of a :class:`SessionTransport`.

    Both callbacks run synchronously, before the transport does any further
    work, so an observer can keep its bookkeeping consistent with the state.
    """

    def session_activated(self, transport: SessionTransport) -> None: ...

    def session_closed(self, transport: SessionTransport, reason: str) -> None: ...


class SessionTransport:
    """Owns the lifecycle of one MCP session.

    The session starts ``OPEN``, becomes ``ACTIVE`` once the initialize response
    has been delivered, and ends ``CLOSED`` after a client ``DELETE``, an engine
    failure, a failed handshake or server shutdown. ``CLOSED`` is terminal and
    :meth:`close` is idempotent.

    Args:
        session_id: Identifier issued to the client in the ``mcp-session-id`` header
        engine: The protocol engine serving this session only
        observer: Notified of every state transition
        json_response: Answer POSTs with plain JSON instead of an SSE stream
        security_settings: Optional DNS rebinding protection settings
    """

    def __init__(
        self,
        session_id: str,
        engine: Server[Any, Any],
        observer: SessionObserver,
        *,
        json_response: bool = False,
        security_settings: TransportSecuritySettings | None = None,
    ):
        self.session_id = session_id
        self.engine = engine
        self._observer = observer
        self._http_transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=json_response,
            event_store=None,
            security_settings=security_settings,
        )
        self._state = SessionState.OPEN
        self._engine_scope: anyio.CancelScope | None = None

    def __repr__(self) -> str:
        return f"SessionTransport(session_id={self.session_id!r}, state={self._state.value})"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    async def start(self, task_group: TaskGroup) -> None:
        """Connect the channel and start the engine in ``task_group``.

        Returns once the channel is connected and the engine can receive messages.
        """
        await task_group.start(self._run_engine)

    def activate(self) -> bool:
        """Move ``OPEN`` to ``ACTIVE``. Returns False if the session was not ``OPEN``."""
        if self._state is not SessionState.OPEN:
            return False
        self._state = SessionState.ACTIVE
        self._observer.session_activated(self)
        return True

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Feed one HTTP request into the session's channel.

        If the protocol layer terminated the channel while handling it (a client
        ``DELETE``), the session is closed before returning.

        Raises:
            InvalidSessionError: if the session is already closed.
        """
        if self.is_closed:
            raise InvalidSessionError(self.session_id)
        await self._http_transport.handle_request(scope, receive, send)
        if self._http_transport.is_terminated:
            await self.close("terminated by client")

    async def close(self, reason: str = "close requested") -> None:
        """Close the session. Calling it on a closed session does nothing."""
        if not self._mark_closed(reason):
            return
        try:
            if not self._http_transport.is_terminated:
                await self._http_transport.terminate()
        finally:
            if self._engine_scope is not None:
                self._engine_scope.cancel()

    def _mark_closed(self, reason: str) -> bool:
        if self._state is SessionState.CLOSED:
            return False
        previous = self._state
        self._state = SessionState.CLOSED
        logger.info(f"Session {self.session_id} closed ({previous.value} -> closed): {reason}")
        self._observer.session_closed(self, reason)
        return True

    async def _run_engine(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        try:
            with anyio.CancelScope() as scope:
                self._engine_scope = scope
                try:
                    async with self._http_transport.connect() as (read_stream, write_stream):
                        task_status.started()
                        await self.engine.run(
                            read_stream,
                            write_stream,
                            self.engine.create_initialization_options(),
                            stateless=False,
                        )
                except Exception:
                    if self.is_closed or self._http_transport.is_terminated:
                        logger.debug(f"Engine for closed session {self.session_id} stopped", exc_info=True)
                    else:
                        logger.exception(f"Session {self.session_id} crashed")
        finally:
            if self._mark_closed("engine stopped"):
                with anyio.CancelScope(shield=True):
                    await self._http_transport.terminate()
