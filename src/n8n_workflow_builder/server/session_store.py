"""Thread-safe registry of live HTTP sessions."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from n8n_workflow_builder.server.session_transport import SessionTransport


class SessionStore:
    """Maps session IDs to live :class:`SessionTransport` instances.

    This is the only state shared between concurrent requests. All access goes
    through a lock, so the store is safe under the event loop as well as under a
    threaded server. A transport is only inserted once fully constructed, and a
    closed transport is never inserted.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionTransport] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def put(self, session_id: str, transport: SessionTransport) -> None:
        """Register a transport under ``session_id``.

        Raises:
            ValueError: if the ID is already registered or the transport is closed.
        """
        if transport.is_closed:
            raise ValueError(f"Cannot register closed session {session_id}")
        with self._lock:
            if session_id in self._sessions:
                raise ValueError(f"Session {session_id} is already registered")
            self._sessions[session_id] = transport

    def get(self, session_id: str) -> SessionTransport | None:
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: str) -> SessionTransport | None:
        """Remove and return the transport for ``session_id``, if present."""
        with self._lock:
            return self._sessions.pop(session_id, None)

    def snapshot(self) -> list[tuple[str, SessionTransport]]:
        """Return the current entries; later changes to the store do not affect it."""
        with self._lock:
            return list(self._sessions.items())

    def for_each(self, callback: Callable[[str, SessionTransport], object]) -> None:
        """Call ``callback(session_id, transport)`` for every entry of a snapshot.

        The lock is not held while the callback runs, so the callback may itself
        modify the store.
        """
        for session_id, transport in self.snapshot():
            callback(session_id, transport)
