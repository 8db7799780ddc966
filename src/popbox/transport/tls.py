"""Encrypted byte-stream transport built on asyncio streams."""

import asyncio
import ssl
from typing import Protocol

import structlog

from popbox.exceptions import TransportError

logger = structlog.get_logger(__name__)

READ_CHUNK_SIZE = 4096


class Transport(Protocol):
    """Bidirectional byte stream used by a POP3 session.

    ``read`` returns ``b""`` once the peer has closed the stream.
    """

    async def read(self) -> bytes: ...

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


class TLSTransport:
    """TLS stream to a mail server with certificate validation enforced."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        ssl_context: ssl.SSLContext | None = None,
    ) -> "TLSTransport":
        """Open a TLS connection and complete the handshake.

        Args:
            host: Server hostname, also used for certificate matching.
            port: Server port.
            ssl_context: Context to use. Defaults to a context that
                verifies the server certificate and hostname.

        Raises:
            TransportError: If the connection or handshake fails,
                including certificate validation failures.
        """
        context = ssl_context or ssl.create_default_context()
        try:
            reader, writer = await asyncio.open_connection(
                host, port, ssl=context, server_hostname=host
            )
        except ssl.SSLCertVerificationError as e:
            raise TransportError(f"certificate validation failed for {host}: {e}") from e
        except OSError as e:
            raise TransportError(f"connection to {host}:{port} failed: {e}") from e
        return cls(reader, writer)

    async def read(self) -> bytes:
        """Return the next chunk of bytes, or ``b""`` at end of stream."""
        try:
            return await self._reader.read(READ_CHUNK_SIZE)
        except OSError as e:
            raise TransportError(f"read failed: {e}") from e

    async def write(self, data: bytes) -> None:
        if self._closed:
            raise TransportError("write on closed transport")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"write failed: {e}") from e

    async def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (OSError, ssl.SSLError) as e:
            # the peer may already have torn the connection down
            logger.debug("tls_close_error", error=str(e))
