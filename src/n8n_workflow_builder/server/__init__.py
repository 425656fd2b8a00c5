"""Streamable HTTP session layer."""

from .app import create_app
from .engine import create_engine
from .errors import HandshakeError, InvalidSessionError, NoPortAvailableError, SessionError
from .port_finder import find_available_port, is_port_available
from .router import SessionRouter
from .session_store import SessionStore
from .session_transport import SessionObserver, SessionState, SessionTransport
from .shutdown import DrainingServer, drain_sessions

__all__ = [
    "DrainingServer",
    "HandshakeError",
    "InvalidSessionError",
    "NoPortAvailableError",
    "SessionError",
    "SessionObserver",
    "SessionRouter",
    "SessionState",
    "SessionStore",
    "SessionTransport",
    "create_app",
    "create_engine",
    "drain_sessions",
    "find_available_port",
    "is_port_available",
]
