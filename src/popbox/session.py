"""Async POP3 session over an encrypted transport.

A session owns its transport exclusively and issues one command at a
time: each command is written, then its reply is framed and classified
before the next command may start.
"""

import asyncio
import contextlib
import ssl
from collections.abc import AsyncIterator
from enum import IntEnum

import structlog

from popbox.core.logging import format_size, sanitize_for_log
from popbox.core.timeout import DEFAULT_TIMEOUT, with_timeout
from popbox.exceptions import (
    CommandError,
    ConnectionFailedError,
    InvalidStateError,
    ProtocolError,
    SessionBusyError,
    TransportError,
)
from popbox.protocol import (
    CommandResult,
    ListResult,
    ResponseFramer,
    StatResult,
    extract_body,
    parse_list,
    parse_list_entry,
    parse_stat,
)
from popbox.transport.tls import TLSTransport, Transport

logger = structlog.get_logger(__name__)


class SessionState(IntEnum):
    DISCONNECTED = 0
    CONNECTED = 1
    AUTHENTICATED = 2


class POP3Session:
    """A POP3 session bound to one transport.

    Sessions are normally created with :func:`connect`, which performs the
    handshake and reads the greeting. Mailbox operations require
    :meth:`login` first.

    Attributes:
        host: Server hostname.
        port: Server port.
        state: Current lifecycle state.
        auth_user: Username after a successful login, else "".
        greeting: The server's greeting line once connected.
    """

    def __init__(
        self,
        transport: Transport,
        host: str,
        port: int,
        encoding: str = "ascii",
    ) -> None:
        self.host = host
        self.port = port
        self.encoding = encoding
        self.state = SessionState.DISCONNECTED
        self.auth_user = ""
        self.greeting = ""
        self._transport: Transport | None = transport
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self.state != SessionState.DISCONNECTED

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def busy(self) -> bool:
        """True while a command is awaiting its reply."""
        return self._lock.locked()

    @contextlib.asynccontextmanager
    async def _exclusive(self, command: str) -> AsyncIterator[None]:
        # the check and the acquire happen without a suspension point
        if self._lock.locked():
            raise SessionBusyError(command)
        async with self._lock:
            yield

    async def execute(
        self,
        command: str,
        argument: str | None = None,
        multiline: bool = False,
    ) -> CommandResult:
        """Send one command and wait for its complete reply.

        Args:
            command: The command verb, e.g. "RETR".
            argument: Optional argument, sent after a single space.
            multiline: Whether a positive reply carries a body.

        Returns:
            The positive reply.

        Raises:
            SessionBusyError: If another command is in flight. Nothing
                is written in that case.
            CommandError: If the server replies negatively.
            TransportError: If the stream fails or is closed by the peer.
            ProtocolError: If the reply cannot be framed. The session is
                closed, since the stream position is no longer known.
        """
        line = command if argument is None else f"{command} {argument}"
        if "\r" in line or "\n" in line:
            raise ValueError(f"pop3 {command}: line breaks are not allowed in commands")

        async with self._exclusive(command):
            logger.debug("pop3_command_sent", command=command)
            await self._write(f"{line}\r\n".encode(self.encoding))
            result = await self.read_response(multiline)

        if not result.success:
            raise CommandError(command, result.data)
        return result

    async def read_response(self, multiline: bool = False) -> CommandResult:
        """Read from the transport until one reply is framed."""
        transport = self._require_transport()
        framer = ResponseFramer(multiline=multiline, encoding=self.encoding)
        while True:
            try:
                chunk = await transport.read()
            except TransportError as e:
                await self._on_error(e)
                raise
            if not chunk:
                await self._on_end()
                raise TransportError(f"connection to {self.host}:{self.port} closed by server")
            try:
                result = framer.feed(chunk)
            except ProtocolError as e:
                # the rest of the reply is unread, so the stream is out of step
                await self._on_error(e)
                raise
            if result is not None:
                return result

    async def _write(self, data: bytes) -> None:
        transport = self._require_transport()
        try:
            await transport.write(data)
        except TransportError as e:
            await self._on_error(e)
            raise

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise TransportError(f"connection to {self.host}:{self.port} is closed")
        return self._transport

    def _require_state(self, expected: SessionState) -> None:
        if self.state != expected:
            raise InvalidStateError(expected, self.state)

    async def _on_error(self, error: Exception) -> None:
        logger.error("pop3_socket_error", host=self.host, error=str(error))
        await self._release()

    async def _on_end(self) -> None:
        logger.info("pop3_peer_closed", host=self.host)
        await self._release()

    async def _release(self) -> None:
        """Close the transport and mark the session disconnected."""
        self.state = SessionState.DISCONNECTED
        transport, self._transport = self._transport, None
        if transport is None:
            return
        await transport.close()
        logger.info("pop3_connection_closed", host=self.host, port=self.port)

    async def open(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Read the server greeting and enter the connected state.

        Raises:
            ConnectionTimeoutError: If no greeting arrives in time.
            ConnectionFailedError: If the greeting is negative.
        """
        self._require_state(SessionState.DISCONNECTED)
        try:
            async with self._exclusive("GREETING"):
                result = await with_timeout(self.read_response(), timeout, "greeting")
        except BaseException:
            await self._release()
            raise

        if not result.success:
            await self._release()
            raise ConnectionFailedError(result.data)

        self.greeting = result.status_line
        self.state = SessionState.CONNECTED
        logger.info(
            "pop3_connected",
            host=self.host,
            port=self.port,
            greeting=sanitize_for_log(self.greeting),
        )

    async def login(self, username: str, password: str) -> None:
        """Authenticate with USER and PASS.

        If either command is rejected the session stays connected but
        unauthenticated.
        """
        self._require_state(SessionState.CONNECTED)

        await self.execute("USER", username)
        await self.execute("PASS", password)

        self.state = SessionState.AUTHENTICATED
        self.auth_user = username
        logger.info("pop3_authenticated", user=username)

    async def quit(self) -> None:
        """End the session.

        Does nothing if already disconnected. The transport is closed even
        when QUIT itself fails.
        """
        if self.state == SessionState.DISCONNECTED:
            return
        try:
            await self.execute("QUIT")
        finally:
            await self._release()

    async def abort(self) -> None:
        """Drop the connection without QUIT.

        The server never enters its update state, so messages marked with
        DELE during this session are kept.
        """
        if self._transport is not None:
            logger.warning("pop3_session_aborted", host=self.host, user=self.auth_user)
        await self._release()

    async def __aenter__(self) -> "POP3Session":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        # deletions are only committed when the block completed
        if exc_type is None:
            await self.quit()
        else:
            await self.abort()

    async def stat(self) -> StatResult:
        """Return the message count and maildrop size."""
        self._require_state(SessionState.AUTHENTICATED)
        return parse_stat(await self.execute("STAT"))

    async def get_count(self) -> int:
        return (await self.stat()).count

    async def list(self, msg: int | None = None) -> ListResult:
        """List message sizes, for every message or for message ``msg``."""
        self._require_state(SessionState.AUTHENTICATED)
        if msg is not None:
            return parse_list_entry(await self.execute("LIST", str(msg)))
        return parse_list(await self.execute("LIST", multiline=True))

    async def retrieve(self, msg: int) -> str:
        """Return the full text of message ``msg``."""
        self._require_state(SessionState.AUTHENTICATED)
        message = extract_body(await self.execute("RETR", str(msg), multiline=True))
        logger.info(
            "pop3_message_retrieved",
            msg=msg,
            user=self.auth_user,
            size=format_size(len(message)),
        )
        return message

    async def delete(self, msg: int) -> None:
        """Mark message ``msg`` for deletion at QUIT."""
        self._require_state(SessionState.AUTHENTICATED)
        await self.execute("DELE", str(msg))
        logger.debug("pop3_message_deleted", msg=msg, user=self.auth_user)

    async def drain(self, limit: int | None = None) -> AsyncIterator[str]:
        """Retrieve and delete every listed message, yielding each body.

        The mailbox is listed once when iteration starts. Each message is
        deleted before the next one is retrieved. Stopping early leaves
        the remaining messages untouched.

        Args:
            limit: Stop after this many messages.
        """
        self._require_state(SessionState.AUTHENTICATED)

        listing = await self.list()
        if listing.count == 0:
            return

        drained = 0
        for msg in tuple(listing.messages):
            if limit is not None and drained >= limit:
                break
            message = await self.retrieve(msg)
            await self.delete(msg)
            drained += 1
            yield message

        logger.info("pop3_drain_complete", user=self.auth_user, count=drained)


async def connect(
    host: str,
    port: int,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    ssl_context: ssl.SSLContext | None = None,
) -> POP3Session:
    """Open a TLS connection to a POP3 server and read its greeting.

    The handshake and the greeting are each bounded by ``timeout``.
    Server certificates are always verified unless a custom
    ``ssl_context`` says otherwise.

    Raises:
        TransportError: If the connection or certificate check fails.
        ConnectionTimeoutError: If the handshake or greeting times out.
        ConnectionFailedError: If the server greets with ``-ERR``.
    """
    logger.info("pop3_connecting", host=host, port=port)
    transport = await with_timeout(
        TLSTransport.connect(host, port, ssl_context), timeout, "connect"
    )
    session = POP3Session(transport, host, port)
    await session.open(timeout)
    return session
