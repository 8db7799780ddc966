"""POP3 wire protocol: reply framing and payload parsing."""

from popbox.protocol.framer import CommandResult, ResponseFramer
from popbox.protocol.parsing import (
    ListResult,
    StatResult,
    extract_body,
    parse_list,
    parse_list_entry,
    parse_stat,
    unstuff_dots,
)

__all__ = [
    "CommandResult",
    "ListResult",
    "ResponseFramer",
    "StatResult",
    "extract_body",
    "parse_list",
    "parse_list_entry",
    "parse_stat",
    "unstuff_dots",
]
