"""``pdns_exporter.transport`` does the actual talking to the PowerDNS control sockets.

The authoritative server listens on a unix stream socket. The request is terminated by
a null byte and the server closes the connection when the response is complete.

The recursor listens on a unix datagram socket. Since a datagram peer can not reply
to an unbound sender the exporter binds its own socket to a local path first, and the
reply is a single datagram read into a fixed size buffer. Larger replies are truncated.
"""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import TYPE_CHECKING

from pdns_exporter.config import TransportKind
from pdns_exporter.exceptions import TransportError

if TYPE_CHECKING:  # pragma: no cover
    from pdns_exporter.config import Target

logger = logging.getLogger(f"pdns_exporter.{__name__}")

DGRAM_BUFSIZE = 4096
"""Replies from the recursor longer than this are silently truncated."""

STREAM_CHUNKSIZE = 4096


def query(target: Target, local_socket: str) -> bytes:
    """Do one request/response exchange with the control socket of the target and return the raw response.

    Raises:
    -------
        TransportError: If any step of the exchange fails

    """
    if target.transport_kind is TransportKind.DATAGRAM:
        return query_datagram(target=target, local_socket=local_socket)
    if target.transport_kind is TransportKind.STREAM:
        return query_stream(target=target)
    # unknown transport, we will never get here
    raise TransportError("socket", target.socket_path, f"unknown transport {target.transport_kind}")  # pragma: no cover


def query_datagram(target: Target, local_socket: str) -> bytes:
    """Send the command in one datagram from local_socket and return the (possibly truncated) reply.

    The local socket file is removed again before returning, also when something fails,
    since a leftover file would make the next bind fail.
    """
    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    except OSError as e:
        raise TransportError("socket", target.socket_path, str(e)) from e

    local_path = Path(local_socket)
    bound = False
    step = "unlink"
    try:
        # remove stale socket file from an earlier run
        local_path.unlink(missing_ok=True)

        step = "bind"
        sock.bind(local_socket)
        bound = True

        # the recursor might run as another user and must be able to write the reply
        step = "chmod"
        local_path.chmod(0o666)

        sock.settimeout(target.timeout)
        step = "connect"
        sock.connect(target.socket_path)

        step = "send"
        sock.send(target.command.encode("utf-8"))

        step = "recv"
        response = sock.recv(DGRAM_BUFSIZE)
    except OSError as e:
        logger.debug(f"Datagram {step} failed for target {target.instance}: {e}")
        raise TransportError(step, target.socket_path, str(e)) from e
    finally:
        sock.close()
        if bound:
            try:
                local_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Unable to remove local socket {local_socket}: {e}")

    logger.debug(f"Received {len(response)} bytes from {target.socket_path} for target {target.instance}")
    return response


def query_stream(target: Target) -> bytes:
    """Send the null terminated command and read until the server closes the connection.

    There is no length limit on the response. If a receive fails the data received so far is discarded.
    """
    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    except OSError as e:
        raise TransportError("socket", target.socket_path, str(e)) from e

    buffer = bytearray()
    step = "connect"
    try:
        sock.settimeout(target.timeout)
        sock.connect(target.socket_path)

        # the server dialect wants the terminating null byte too
        step = "send"
        sock.sendall(target.command.encode("utf-8") + b"\0")

        step = "recv"
        while True:
            chunk = sock.recv(STREAM_CHUNKSIZE)
            if not chunk:
                # peer closed its end, response is complete
                break
            buffer += chunk
    except OSError as e:
        logger.debug(f"Stream {step} failed for target {target.instance}: {e}")
        raise TransportError(step, target.socket_path, str(e)) from e
    finally:
        sock.close()

    logger.debug(f"Received {len(buffer)} bytes from {target.socket_path} for target {target.instance}")
    return bytes(buffer)
