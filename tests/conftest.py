"""Pytest configuration and fixtures."""

import asyncio
import os
from collections import deque

import pytest
import structlog

from popbox.exceptions import TransportError
from popbox.session import POP3Session

# Set test environment variables before importing settings
os.environ.update(
    {
        "POPBOX_HOST": "pop.test.local",
        "POPBOX_USER": "alice@test.local",
        "POPBOX_PASSWORD": "testpass",
    }
)

GREETING = b"+OK POP3 server ready\r\n"

DEFAULT_REPLIES = {
    "USER": b"+OK\r\n",
    "PASS": b"+OK maildrop locked and ready\r\n",
    "QUIT": b"+OK bye\r\n",
}


class FakeTransport:
    """Scripted in-memory transport.

    Each written command line is answered with the reply registered for
    the full line (e.g. "RETR 1") or, failing that, for its verb. A command
    with no registered reply blocks until ``feed`` is called.
    """

    def __init__(
        self,
        replies: dict[str, bytes] | None = None,
        greeting: bytes = GREETING,
        chunk_size: int | None = None,
    ) -> None:
        self.replies = {**DEFAULT_REPLIES, **(replies or {})}
        self.chunk_size = chunk_size
        self.writes: list[bytes] = []
        self.closed = False
        self.overlapping_writes = 0
        self.pending_replies: deque[bytes] = deque()
        self._buffer = bytearray(greeting)
        self._in_flight = False
        self._eof = False
        self._data = asyncio.Event()
        if greeting:
            self._data.set()

    @property
    def commands(self) -> list[str]:
        return [w.decode("ascii").rstrip("\r\n") for w in self.writes]

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)
        self._data.set()

    def end(self) -> None:
        self._eof = True
        self._data.set()

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise TransportError("write on closed transport")
        if self._in_flight:
            self.overlapping_writes += 1
        self.writes.append(bytes(data))
        self._in_flight = True

        line = data.decode("ascii").rstrip("\r\n")
        reply = self.replies.get(line, self.replies.get(line.split(" ", 1)[0]))
        if reply is not None:
            self.feed(reply)

    async def read(self) -> bytes:
        while not self._buffer:
            if self._eof:
                return b""
            self._data.clear()
            await self._data.wait()
        size = self.chunk_size or len(self._buffer)
        chunk = bytes(self._buffer[:size])
        del self._buffer[:size]
        if not self._buffer:
            self._in_flight = False
        return chunk

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_transport():
    """The FakeTransport class, for tests that build sessions by hand."""
    return FakeTransport


@pytest.fixture
def open_session():
    """Factory for sessions on a FakeTransport that has read its greeting.

    With ``login=True`` the session is also authenticated, and the USER/PASS
    writes are cleared from the transport log.
    """

    async def _open(
        replies: dict[str, bytes] | None = None,
        *,
        login: bool = False,
        **kwargs,
    ) -> tuple[POP3Session, FakeTransport]:
        transport = FakeTransport(replies, **kwargs)
        session = POP3Session(transport, "pop.test.local", 995)
        await session.open(timeout=1)
        if login:
            await session.login("alice", "secret")
            transport.writes.clear()
        return session, transport

    return _open


@pytest.fixture
def two_message_mailbox() -> dict[str, bytes]:
    """Replies for a mailbox holding two messages."""
    return {
        "LIST": b"+OK 2 messages (650 octets)\r\n1 200\r\n2 450\r\n.\r\n",
        "RETR 1": b"+OK 200 octets\r\nSubject: one\r\n\r\nfirst\r\n.\r\n",
        "RETR 2": b"+OK 450 octets\r\nSubject: two\r\n\r\nsecond\r\n.\r\n",
        "DELE": b"+OK message deleted\r\n",
    }


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any configure_logging() call made by a test."""
    yield
    structlog.reset_defaults()
