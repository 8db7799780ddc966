"""Async POP3 client over TLS."""

from popbox.exceptions import (
    CommandError,
    ConnectionFailedError,
    ConnectionTimeoutError,
    InvalidStateError,
    PopboxError,
    ProtocolError,
    SessionBusyError,
    TransportError,
)
from popbox.protocol import CommandResult, ListResult, StatResult
from popbox.session import POP3Session, SessionState, connect

__version__ = "0.1.0"

__all__ = [
    "CommandError",
    "CommandResult",
    "ConnectionFailedError",
    "ConnectionTimeoutError",
    "InvalidStateError",
    "ListResult",
    "POP3Session",
    "PopboxError",
    "ProtocolError",
    "SessionBusyError",
    "SessionState",
    "StatResult",
    "TransportError",
    "connect",
]
