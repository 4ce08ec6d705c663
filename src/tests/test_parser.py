"""Unit tests for parser.py."""

from pdns_exporter.config import Target
from pdns_exporter.parser import decode, parse_recursor, parse_server


def test_server_empty_value_skipped():
    """Tokens with an empty value are dropped and the order is kept."""
    assert list(parse_server("a=1,b=2,c=,d=4")) == [("a", "1"), ("b", "2"), ("d", "4")]


def test_server_token_without_equals_ends_data():
    """Everything after a token without = is ignored."""
    assert list(parse_server("a=1,bogus,c=3")) == [("a", "1")]


def test_server_trailing_comma():
    """The trailing comma sent by PowerDNS is fine."""
    assert list(parse_server(b"a=1,b=2,")) == [("a", "1"), ("b", "2")]


def test_server_trailing_newline_ends_data():
    """A trailing newline after the last comma is a token without = and ends the data."""
    assert list(parse_server(b"a=1,b=2,\n")) == [("a", "1"), ("b", "2")]


def test_server_empty_tokens_skipped():
    """Consecutive commas do not end the data."""
    assert list(parse_server(b",a=1,,b=2")) == [("a", "1"), ("b", "2")]


def test_server_value_split_on_first_equals():
    """Only the first = separates key and value."""
    assert list(parse_server(b"a=b=c")) == [("a", "b=c")]


def test_server_null_byte_ends_data():
    """The response ends at the first null byte."""
    assert list(parse_server(b"a=1,b=2\0c=3")) == [("a", "1"), ("b", "2")]


def test_server_empty_buffer():
    """An empty response gives no pairs."""
    assert list(parse_server(b"")) == []


def test_server_invalid_utf8():
    """Undecodable bytes do not make the parser fail."""
    assert list(parse_server(b"a=1,b=\xff")) == [("a", "1"), ("b", "�")]


def test_recursor_positional():
    """Values are paired with the names in the command."""
    assert list(parse_recursor(b"10 20 30", "get x y z")) == [("x", "10"), ("y", "20"), ("z", "30")]


def test_recursor_short_response():
    """Missing values mean the remaining names are dropped."""
    assert list(parse_recursor(b"10 20", "get x y z")) == [("x", "10"), ("y", "20")]


def test_recursor_long_response():
    """Extra values are dropped."""
    assert list(parse_recursor(b"10 20 30 40", "get x y")) == [("x", "10"), ("y", "20")]


def test_recursor_newlines_and_tabs():
    """The recursor separates values with newlines, the command might contain tabs."""
    assert list(parse_recursor(b"10\n20\r\n30\n", "get\tx  y\tz")) == [("x", "10"), ("y", "20"), ("z", "30")]


def test_recursor_command_without_names():
    """A bare get gives nothing."""
    assert list(parse_recursor(b"10 20", "get")) == []


def test_decode_dispatch():
    """decode() picks the parser from the dialect of the target."""
    server = Target.create(dialect="server", instance="s")
    recursor = Target.create(dialect="recursor", instance="r", command="get a b")
    assert list(decode(b"a=1,b=2", server)) == [("a", "1"), ("b", "2")]
    assert list(decode(b"1 2", recursor)) == [("a", "1"), ("b", "2")]
