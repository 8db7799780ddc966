"""Custom exceptions for popbox.

This module defines the exception hierarchy used throughout the
popbox package for error handling and reporting.
"""

from typing import Any


class PopboxError(Exception):
    """Base exception for all popbox errors.

    All custom exceptions in the popbox package inherit from this
    class, allowing for broad exception catching when needed.

    Attributes:
        message: A human-readable description of the error.
    """

    def __init__(self, message: str = "An error occurred in popbox") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: A description of the error that occurred.
        """
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PopboxError):
    """Raised when there is an error in the configuration."""

    def __init__(self, message: str = "Configuration error") -> None:
        super().__init__(message)


class TransportError(PopboxError):
    """Raised when the encrypted transport fails.

    This covers stream errors, certificate validation failures and the
    peer closing the connection while a reply is awaited. The session
    is unusable afterwards.
    """

    def __init__(self, message: str = "Transport error") -> None:
        super().__init__(message)


class ConnectionTimeoutError(PopboxError, TimeoutError):
    """Raised when a guarded operation misses its deadline.

    Attributes:
        operation: Name of the operation that timed out.
        timeout: The deadline in seconds.
    """

    def __init__(self, operation: str, timeout: float) -> None:
        """Initialize the exception.

        Args:
            operation: Name of the operation that timed out (e.g. "connect").
            timeout: The deadline that was exceeded, in seconds.
        """
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"pop3 {operation} timed out after {timeout:g}s")


class ProtocolError(PopboxError):
    """Raised when the server sends a reply that cannot be parsed."""

    def __init__(self, message: str = "Malformed server reply") -> None:
        super().__init__(message)


class CommandError(PopboxError):
    """Raised when the server answers a command with a negative reply.

    The session stays usable; only the command failed.

    Attributes:
        command: The command verb that failed (e.g. "RETR").
        response: The raw reply text, including the trailing CRLF.
    """

    def __init__(self, command: str, response: str) -> None:
        """Initialize the exception with the failing command and reply.

        Args:
            command: The command verb that failed.
            response: The raw reply text from the server.
        """
        self.command = command
        self.response = response
        super().__init__(f"pop3 {command} failed: {response.strip()}")

    @property
    def metadata(self) -> dict[str, Any]:
        """Structured context for logging."""
        return {"command": self.command, "response": self.response}


class ConnectionFailedError(CommandError):
    """Raised when the server greets the client with a negative reply."""

    def __init__(self, response: str) -> None:
        super().__init__("GREETING", response)


class InvalidStateError(PopboxError):
    """Raised when an operation is invoked in the wrong session state.

    This indicates a caller bug rather than a transient condition.

    Attributes:
        expected: The state the operation requires.
        actual: The state the session was in.
    """

    def __init__(self, expected: Any, actual: Any) -> None:
        """Initialize the exception with the expected and actual states.

        Args:
            expected: The required session state.
            actual: The session state at the time of the call.
        """
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"pop3 invalid state: expected {_state_name(expected)}, "
            f"got {_state_name(actual)}"
        )


class SessionBusyError(PopboxError):
    """Raised when a command is issued while another is still in flight.

    Attributes:
        command: The command that was refused.
    """

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"pop3 {command} failed: session busy")


def _state_name(state: Any) -> str:
    return getattr(state, "name", str(state))


class StorageError(PopboxError):
    """Raised when a retrieved message cannot be stored locally."""

    def __init__(self, message: str = "Message storage error") -> None:
        super().__init__(message)
