"""Parsers for POP3 reply payloads.

These functions work on the raw text produced by the framer and know
nothing about sockets or session state.
"""

from dataclasses import dataclass, field

from popbox.exceptions import ProtocolError
from popbox.protocol.framer import CommandResult

_CRLF = "\r\n"
_TERMINATOR = "\r\n.\r\n"


@dataclass(frozen=True)
class StatResult:
    """Mailbox summary from STAT.

    Attributes:
        count: Number of messages in the maildrop.
        octets: Total size of the maildrop in octets.
    """

    count: int
    octets: int


@dataclass
class ListResult:
    """Message sizes from LIST.

    Attributes:
        count: Number of entries parsed from the reply.
        messages: Sequence number to size in octets, in server order.
    """

    count: int = 0
    messages: dict[int, int] = field(default_factory=dict)


def _to_int(value: str, what: str, line: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ProtocolError(f"invalid {what} in reply: {line!r}") from None


def parse_stat(result: CommandResult) -> StatResult:
    """Parse ``+OK <count> <octets>``."""
    line = result.status_line
    parts = line.split(" ")
    if len(parts) < 3:
        raise ProtocolError(f"malformed STAT reply: {line!r}")
    return StatResult(
        count=_to_int(parts[1], "message count", line),
        octets=_to_int(parts[2], "maildrop size", line),
    )


def parse_list_entry(result: CommandResult) -> ListResult:
    """Parse the single-line ``+OK <n> <size>`` reply to ``LIST <n>``."""
    line = result.status_line
    parts = line.split(" ")
    if len(parts) < 3:
        raise ProtocolError(f"malformed LIST reply: {line!r}")
    msg = _to_int(parts[1], "message number", line)
    return ListResult(count=1, messages={msg: _to_int(parts[2], "message size", line)})


def parse_list(result: CommandResult) -> ListResult:
    """Parse the multi-line reply to ``LIST``.

    Body lines with fewer than two fields are skipped. The count in the
    status line is ignored; ``count`` is the number of parsed entries.
    """
    listing = ListResult()
    body = _body(result.data)
    if not body:
        return listing
    for line in body.split(_CRLF):
        parts = line.split()
        if len(parts) < 2:
            continue
        listing.messages[_to_int(parts[0], "message number", line)] = _to_int(
            parts[1], "message size", line
        )
    listing.count = len(listing.messages)
    return listing


def extract_body(result: CommandResult) -> str:
    """Return the body of a multi-line reply with byte-stuffing removed."""
    return unstuff_dots(_body(result.data))


def unstuff_dots(body: str) -> str:
    """Undo the server's dot-stuffing: a line ``..x`` becomes ``.x``."""
    if ".." not in body:
        return body
    return _CRLF.join(
        line[1:] if line.startswith("..") else line for line in body.split(_CRLF)
    )


def _body(data: str) -> str:
    # between the end of the status line and the start of the terminator
    start = data.find(_CRLF)
    if start < 0:
        return ""
    start += len(_CRLF)
    end = len(data) - len(_TERMINATOR) if data.endswith(_TERMINATOR) else len(data)
    if end <= start:
        return ""
    return data[start:end]
