"""``pdns_exporter.parser`` turns raw control socket responses into (name, value) pairs.

Parsing never fails. Malformed parts of a response are skipped and whatever could be
extracted is returned.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pdns_exporter.config import Dialect

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterator

    from pdns_exporter.config import Target

logger = logging.getLogger(f"pdns_exporter.{__name__}")


def _text(buffer: bytes | str) -> str:
    """Return the buffer as text."""
    if isinstance(buffer, str):
        return buffer
    return buffer.decode("utf-8", errors="replace")


def parse_server(buffer: bytes | str) -> Iterator[tuple[str, str]]:
    """Parse the response of the authoritative server.

    The response is a single line like ``corrupt-packets=0,latency=0,packetcache-hit=0,``.
    Empty tokens are skipped, a token without ``=`` ends the data, and tokens with an
    empty value are skipped.
    """
    # the data ends at the first null byte
    text = _text(buffer).split("\0", 1)[0]
    for token in text.split(","):
        if not token:
            continue
        key, sep, value = token.partition("=")
        if not sep:
            logger.debug(f"Token {token!r} has no '=', ignoring the rest of the response")
            return
        if not value:
            logger.debug(f"Skipping {key} with empty value")
            continue
        yield key, value


def parse_recursor(buffer: bytes | str, command: str) -> Iterator[tuple[str, str]]:
    """Parse the response of the recursor.

    The recursor only returns the values, in the order the names appear in the ``get``
    command. The first word of the command is the verb and is skipped. If there are more
    names than values or the other way around the extra ones are ignored.
    """
    names = command.split()[1:]
    values = _text(buffer).split()
    if len(names) != len(values):
        logger.debug(f"Asked for {len(names)} statistics but got {len(values)} values")
    yield from zip(names, values)


def decode(buffer: bytes | str, target: Target) -> Iterator[tuple[str, str]]:
    """Parse buffer with the parser for the dialect of the target."""
    if target.dialect is Dialect.RECURSOR:
        return parse_recursor(buffer, target.command)
    return parse_server(buffer)
