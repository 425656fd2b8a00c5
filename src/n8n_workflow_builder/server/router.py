"""Routing of ``/mcp`` requests to per-client sessions."""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Callable
from http import HTTPStatus
from typing import Any
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from mcp.server.transport_security import TransportSecuritySettings
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.types import Message, Receive, Scope, Send

from n8n_workflow_builder.server.errors import HandshakeError, InvalidSessionError
from n8n_workflow_builder.server.session_store import SessionStore
from n8n_workflow_builder.server.session_transport import SessionTransport
from n8n_workflow_builder.server.shutdown import DEFAULT_CLOSE_TIMEOUT, drain_sessions

logger = logging.getLogger(__name__)

# JSON-RPC error codes used in transport-level error bodies
SERVER_ERROR = -32000
INTERNAL_ERROR = -32603

INVALID_SESSION_MESSAGE = "Bad Request: No valid session ID provided"
INVALID_SESSION_TEXT = "Invalid or missing session ID"
INTERNAL_ERROR_MESSAGE = "Internal server error"
TERMINATION_ERROR_TEXT = "Error processing session termination"


def jsonrpc_error_response(code: int, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


def is_initialize_request(body: bytes) -> bool:
    """Return True if ``body`` is a single JSON-RPC ``initialize`` request."""
    try:
        message = json.loads(body)
    except ValueError:
        return False
    return isinstance(message, dict) and message.get("method") == "initialize"


class ResponseTracker:
    """ASGI ``send`` wrapper that remembers whether a response has started."""

    def __init__(self, send: Send):
        self._send = send
        self.status_code: int | None = None

    @property
    def response_started(self) -> bool:
        return self.status_code is not None

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status_code = message["status"]
        await self._send(message)


def _replay_body(body: bytes, receive: Receive) -> Receive:
    """Return a ``receive`` that yields the already-read body once, then defers to ``receive``."""
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class SessionRouter:
    """ASGI application serving the Streamable HTTP ``/mcp`` endpoint.

    A POST carrying an ``initialize`` request without a session header starts a
    new session: a fresh engine is built, wrapped in a :class:`SessionTransport`,
    registered in the store and then handed the request. Every other request must
    name a live session in the ``mcp-session-id`` header.

    The router observes every session it creates and removes it from the store
    the moment the session closes.

    Important: :meth:`run` must be entered (usually from the application
    lifespan) before requests are handled, and can only be entered once.

    Args:
        engine_factory: Builds a new protocol engine for each session
        store: Session store; a private one is created when omitted
        json_response: Whether to use JSON responses instead of SSE streams
        security_settings: Optional DNS rebinding protection settings
        close_timeout: Upper bound, in seconds, for closing one session at shutdown
    """

    def __init__(
        self,
        engine_factory: Callable[[], Server[Any, Any]],
        store: SessionStore | None = None,
        *,
        json_response: bool = False,
        security_settings: TransportSecuritySettings | None = None,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ):
        self.engine_factory = engine_factory
        self.store = store if store is not None else SessionStore()
        self.json_response = json_response
        self.security_settings = security_settings
        self.close_timeout = close_timeout

        self._task_group: TaskGroup | None = None
        self._run_lock = anyio.Lock()
        self._has_started = False

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """Provide the task group that session engines run in.

        On exit every remaining session is drained before the task group is
        cancelled.
        """
        async with self._run_lock:
            if self._has_started:
                raise RuntimeError(
                    "SessionRouter .run() can only be called once per instance. "
                    "Create a new instance if you need to run again."
                )
            self._has_started = True

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            logger.info("Session router started")
            try:
                yield
            finally:
                logger.info("Session router shutting down")
                with anyio.CancelScope(shield=True):
                    await self.drain()
                tg.cancel_scope.cancel()
                self._task_group = None

    async def drain(self) -> int:
        """Close every live session. Safe to call more than once."""
        return await drain_sessions(self.store, timeout=self.close_timeout)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.handle_request(scope, receive, send)

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Handle one ASGI request to the MCP endpoint.

        Failures are mapped to HTTP responses here and nowhere else, so that a
        response is written at most once per request.
        """
        if self._task_group is None:
            raise RuntimeError("Task group is not initialized. Make sure to use run().")

        request = Request(scope, receive)
        tracker = ResponseTracker(send)
        try:
            response = await self._dispatch(request, tracker)
        except InvalidSessionError as e:
            logger.debug(f"Rejected {request.method} request: {e}")
            response = self._invalid_session_response(request.method)
        except Exception:
            logger.exception(f"Error handling MCP {request.method} request")
            if tracker.response_started:
                return
            response = self._internal_error_response(request.method)

        if response is not None:
            await response(scope, receive, tracker)

    async def _dispatch(self, request: Request, send: ResponseTracker) -> Response | None:
        """Route the request; return a response to write, or None if one was written."""
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        receive = request.receive

        if request.method == "POST":
            body = await request.body()
            receive = _replay_body(body, request.receive)
            if session_id is None and is_initialize_request(body):
                await self._handshake(request.scope, receive, send)
                return None

        transport = self._lookup(session_id)
        if request.method == "DELETE":
            logger.info(f"Received session termination request for session {session_id}")
        await transport.handle_request(request.scope, receive, send)
        return None

    def _lookup(self, session_id: str | None) -> SessionTransport:
        if session_id is None:
            raise InvalidSessionError(None)
        transport = self.store.get(session_id)
        if transport is None:
            raise InvalidSessionError(session_id)
        logger.debug(f"Routing request to session {session_id}")
        return transport

    async def _handshake(self, scope: Scope, receive: Receive, send: ResponseTracker) -> None:
        assert self._task_group is not None
        session_id = uuid4().hex
        transport = SessionTransport(
            session_id,
            self.engine_factory(),
            observer=self,
            json_response=self.json_response,
            security_settings=self.security_settings,
        )
        # registered before the handshake runs so a failure still leaves a removable entry
        self.store.put(session_id, transport)
        logger.info(f"Created new transport with session ID: {session_id}")

        try:
            await transport.start(self._task_group)
            await transport.handle_request(scope, receive, send)
        except Exception as e:
            await transport.close("handshake failed")
            raise HandshakeError(session_id, str(e) or type(e).__name__) from e

        status = send.status_code
        if status is not None and status < HTTPStatus.MULTIPLE_CHOICES:
            transport.activate()
        else:
            logger.warning(f"Handshake for session {session_id} was rejected with status {status}")
            await transport.close("handshake rejected")

    def session_activated(self, transport: SessionTransport) -> None:
        logger.info(f"Session initialized: {transport.session_id}")

    def session_closed(self, transport: SessionTransport, reason: str) -> None:
        self.store.delete(transport.session_id)

    @staticmethod
    def _invalid_session_response(method: str) -> Response:
        if method == "POST":
            return jsonrpc_error_response(SERVER_ERROR, INVALID_SESSION_MESSAGE, HTTPStatus.BAD_REQUEST)
        return PlainTextResponse(INVALID_SESSION_TEXT, status_code=HTTPStatus.BAD_REQUEST)

    @staticmethod
    def _internal_error_response(method: str) -> Response:
        if method == "POST":
            return jsonrpc_error_response(INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE, HTTPStatus.INTERNAL_SERVER_ERROR)
        if method == "DELETE":
            return PlainTextResponse(TERMINATION_ERROR_TEXT, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)
        return PlainTextResponse(INTERNAL_ERROR_MESSAGE, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)
