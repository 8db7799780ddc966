"""Response framing for POP3 replies.

The framer is fed raw transport bytes and decides when a complete reply
has arrived. Completion depends only on the buffered bytes, so it can be
driven by any byte source (a live socket or a test script).
"""

from dataclasses import dataclass

from popbox.exceptions import ProtocolError

CRLF = b"\r\n"
TERMINATOR = b"\r\n.\r\n"
POSITIVE = b"+OK"
NEGATIVE = b"-ERR"


@dataclass(frozen=True)
class CommandResult:
    """A complete, classified server reply.

    Attributes:
        success: True for ``+OK`` replies, False for ``-ERR``.
        data: The raw reply text. For multi-line replies this is the
            status line, the body and the terminator.
    """

    success: bool
    data: str

    @property
    def status_line(self) -> str:
        """The first line of the reply without its CRLF."""
        return self.data.split("\r\n", 1)[0]


class ResponseFramer:
    """Accumulates bytes until one reply is complete.

    Single-line replies end at the first CRLF. Multi-line replies end at
    CRLF ``.`` CRLF when positive and at the first CRLF when negative,
    since error replies never carry a body.
    """

    def __init__(self, multiline: bool = False, encoding: str = "ascii") -> None:
        self.multiline = multiline
        self.encoding = encoding
        self._buffer = bytearray()
        self._success: bool | None = None
        self._result: CommandResult | None = None

    @property
    def success(self) -> bool | None:
        """Classification of the reply, None until the status line arrives."""
        return self._success

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> CommandResult | None:
        return self._result

    def feed(self, data: bytes) -> CommandResult | None:
        """Add bytes to the buffer.

        Args:
            data: The next chunk read from the transport.

        Returns:
            The reply once it is complete, otherwise None.

        Raises:
            ProtocolError: If a multi-line status line is neither
                positive nor negative, or if called after completion.
        """
        if self._result is not None:
            raise ProtocolError("reply already complete")
        self._buffer.extend(data)

        if self._success is None:
            self._success = self._classify()
            if self._success is None:
                return None

        if self._is_complete():
            self._result = CommandResult(
                success=self._success,
                data=self._buffer.decode(self.encoding, errors="replace"),
            )
        return self._result

    def _classify(self) -> bool | None:
        buf = self._buffer
        if buf.startswith(POSITIVE):
            return True
        if buf.startswith(NEGATIVE):
            return False
        if CRLF not in buf:
            return None
        # a full status line without a status marker
        if not self.multiline:
            return True
        line = bytes(buf.split(CRLF, 1)[0])
        raise ProtocolError(f"malformed status line: {line!r}")

    def _is_complete(self) -> bool:
        if not self.multiline or not self._success:
            return CRLF in self._buffer
        return self._buffer.endswith(TERMINATOR)
