"""Tests for POP3 payload parsers."""

import pytest

from popbox.exceptions import ProtocolError
from popbox.protocol import (
    CommandResult,
    ListResult,
    StatResult,
    extract_body,
    parse_list,
    parse_list_entry,
    parse_stat,
    unstuff_dots,
)


def ok(data: str) -> CommandResult:
    return CommandResult(success=True, data=data)


class TestParseStat:
    def test_count_and_octets(self) -> None:
        assert parse_stat(ok("+OK 3 1200\r\n")) == StatResult(count=3, octets=1200)

    def test_empty_maildrop(self) -> None:
        assert parse_stat(ok("+OK 0 0\r\n")) == StatResult(count=0, octets=0)

    def test_trailing_text_is_ignored(self) -> None:
        assert parse_stat(ok("+OK 2 320 extra\r\n")) == StatResult(2, 320)

    @pytest.mark.parametrize("reply", ["+OK\r\n", "+OK 3\r\n", "+OK many 12\r\n"])
    def test_malformed_reply_raises(self, reply: str) -> None:
        with pytest.raises(ProtocolError):
            parse_stat(ok(reply))


class TestParseList:
    def test_body_lines_become_mapping(self) -> None:
        listing = parse_list(ok("+OK 2 messages\r\n1 200\r\n2 450\r\n.\r\n"))

        assert listing.messages == {1: 200, 2: 450}
        assert listing.count == 2

    def test_preserves_server_order(self) -> None:
        listing = parse_list(ok("+OK\r\n7 10\r\n3 20\r\n5 30\r\n.\r\n"))

        assert list(listing.messages) == [7, 3, 5]

    def test_short_lines_are_skipped(self) -> None:
        listing = parse_list(ok("+OK\r\n1 200\r\nbogus\r\n\r\n2 450\r\n.\r\n"))

        assert listing.messages == {1: 200, 2: 450}
        assert listing.count == 2

    def test_count_comes_from_parsed_lines(self) -> None:
        listing = parse_list(ok("+OK 5 messages\r\n1 200\r\n.\r\n"))

        assert listing.count == 1

    def test_empty_listing(self) -> None:
        assert parse_list(ok("+OK 0 messages\r\n.\r\n")) == ListResult()

    def test_single_entry(self) -> None:
        listing = parse_list_entry(ok("+OK 2 450\r\n"))

        assert listing == ListResult(count=1, messages={2: 450})

    def test_single_entry_malformed(self) -> None:
        with pytest.raises(ProtocolError):
            parse_list_entry(ok("+OK\r\n"))


class TestExtractBody:
    def test_body_between_status_line_and_terminator(self) -> None:
        body = extract_body(ok("+OK\r\nHello\r\nWorld\r\n.\r\n"))

        assert body == "Hello\r\nWorld"

    def test_empty_body(self) -> None:
        assert extract_body(ok("+OK\r\n.\r\n")) == ""

    def test_dot_stuffed_lines_are_restored(self) -> None:
        body = extract_body(ok("+OK\r\nline\r\n..\r\n...dots\r\n.\r\n"))

        assert body == "line\r\n.\r\n..dots"

    def test_unstuff_leaves_single_dots_alone(self) -> None:
        assert unstuff_dots(".single\r\nplain") == ".single\r\nplain"
