"""Exceptions raised by the HTTP session layer."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session routing and lifecycle failures."""


class InvalidSessionError(SessionError):
    """A continuation request named no session, or one that is not live."""

    def __init__(self, session_id: str | None):
        if session_id is None:
            message = "No session ID provided"
        else:
            message = f"No live session with ID {session_id}"
        super().__init__(message)
        self.session_id = session_id


class HandshakeError(SessionError):
    """A new session could not be started or initialized."""

    def __init__(self, session_id: str, reason: str = "session initialization failed"):
        super().__init__(f"Handshake for session {session_id} failed: {reason}")
        self.session_id = session_id
        self.reason = reason


class NoPortAvailableError(Exception):
    """Every candidate port in the probing window was unavailable."""

    def __init__(self, preferred: int, max_attempts: int):
        super().__init__(
            f"Could not find an available port after trying {max_attempts} ports starting from {preferred}"
        )
        self.preferred = preferred
        self.max_attempts = max_attempts
