"""``pdns_exporter.config`` contains all the configuration related code for pdns_exporter.

The primary class is the Target object which describes a single PowerDNS control socket to poll.
"""

from __future__ import annotations

import enum
import json
import logging
import math
import typing as t
from dataclasses import asdict, dataclass

from pdns_exporter.exceptions import ConfigError

# get logger
logger = logging.getLogger(f"pdns_exporter.{__name__}")

SERVER_SOCKET = "/var/run/pdns.controlsocket"
SERVER_COMMAND = "SHOW *"

RECURSOR_SOCKET = "/var/run/pdns_recursor.controlsocket"
RECURSOR_COMMAND = (
    "get all-outqueries answers0-1 answers100-1000 answers10-100 answers1-10 answers-slow cache-entries "
    "cache-hits cache-misses chain-resends client-parse-errors concurrent-queries dlg-only-drops "
    "ipv6-outqueries negcache-entries noerror-answers nsset-invalidations nsspeeds-entries "
    "nxdomain-answers outgoing-timeouts qa-latency questions resource-limits server-parse-errors "
    "servfail-answers spoof-prevents sys-msec tcp-client-overflow tcp-outqueries tcp-questions "
    "throttled-out throttled-outqueries throttle-entries unauthorized-tcp unauthorized-udp "
    "unexpected-packets unreachables user-msec"
)

LOCAL_SOCKET = "/var/run/pdns_exporter-powerdns"
"""The path the datagram transport binds to so the recursor has somewhere to send the reply."""

# sun_path is 108 bytes including the terminating null byte
UNIX_PATH_MAX = 107

# the options allowed in a target declaration
valid_options = ["dialect", "instance", "command", "socket", "timeout"]


class Dialect(str, enum.Enum):
    """The two PowerDNS control socket dialects."""

    SERVER = "server"
    RECURSOR = "recursor"


class TransportKind(str, enum.Enum):
    """The kind of unix socket used to talk to the control socket."""

    STREAM = "stream"
    DATAGRAM = "datagram"


# dialect defaults: transport kind, socket path, command
DIALECT_DEFAULTS: dict[Dialect, tuple[TransportKind, str, str]] = {
    Dialect.SERVER: (TransportKind.STREAM, SERVER_SOCKET, SERVER_COMMAND),
    Dialect.RECURSOR: (TransportKind.DATAGRAM, RECURSOR_SOCKET, RECURSOR_COMMAND),
}


def validate_socket_path(path: object, key: str = "socket") -> str:
    """Make sure a socket path is a non-empty string which fits in a sockaddr_un."""
    if not isinstance(path, str) or not path:
        logger.error(f"{key} needs exactly one string argument")
        raise ConfigError("invalid_socket_path")
    if len(path.encode("utf-8")) > UNIX_PATH_MAX:
        logger.error(f"{key} path {path} is longer than {UNIX_PATH_MAX} bytes")
        raise ConfigError("invalid_socket_path")
    return path


@dataclass(frozen=True)
class Target:
    """``pdns_exporter.config.Target`` describes one configured PowerDNS control socket.

    The defaults for each key are defined in the ``pdns_exporter.config.Target.create()`` method.
    Instances are immutable and live in a ``pdns_exporter.registry.TargetRegistry``.
    """

    instance: str
    """str: The unique name of this target. It is exported as the ``server`` label on all metrics."""

    dialect: Dialect
    """Dialect: ``server`` for the authoritative server, ``recursor`` for the recursor."""

    socket_path: str
    """str: The path of the PowerDNS control socket. Default depends on the dialect."""

    command: str
    """str: The request sent to the control socket. Default depends on the dialect."""

    transport_kind: TransportKind
    """TransportKind: ``stream`` for the server dialect, ``datagram`` for the recursor dialect."""

    timeout: float | None = None
    """float | None: Socket timeout in seconds for each step of the exchange. Default is ``None`` (wait forever)."""

    def __post_init__(self) -> None:
        """Validate as much as possible."""
        if not isinstance(self.instance, str) or not self.instance:
            logger.error("instance needs exactly one string argument")
            raise ConfigError("invalid_instance")

        if not isinstance(self.dialect, Dialect):
            raise ConfigError("invalid_dialect")

        validate_socket_path(self.socket_path)

        if not isinstance(self.command, str) or not self.command.strip():
            logger.error("command needs exactly one string argument")
            raise ConfigError("invalid_command")

        if self.transport_kind is not DIALECT_DEFAULTS[self.dialect][0]:
            logger.error(f"Dialect {self.dialect.value} can not use transport {self.transport_kind}")
            raise ConfigError("invalid_transport")

        if self.timeout is not None and not (self.timeout > 0 and math.isfinite(self.timeout)):
            logger.error(f"Invalid timeout {self.timeout}")
            raise ConfigError("invalid_timeout")

    @classmethod
    def create(
        cls: type[Target],
        *,
        dialect: str | Dialect,
        instance: str,
        command: str | None = None,
        socket: str | None = None,
        timeout: float | str | None = None,
    ) -> Target:
        """Return an instance of the Target class with values from the provided parameters overriding the defaults."""
        logger.debug(f"creating {dialect} target {instance}...")
        if isinstance(dialect, str) and not isinstance(dialect, Dialect):
            try:
                dialect = Dialect(dialect.lower())
            except ValueError as e:
                logger.exception(f"Unknown dialect {dialect}")
                raise ConfigError("invalid_dialect") from e
        if not isinstance(dialect, Dialect):
            raise ConfigError("invalid_dialect")

        transport_kind, default_socket, default_command = DIALECT_DEFAULTS[dialect]

        if timeout is not None:
            if isinstance(timeout, bool):
                raise ConfigError("invalid_timeout")
            try:
                timeout = float(timeout)
            except (TypeError, ValueError) as e:
                logger.exception(f"Unable to validate float for key timeout: {timeout}")
                raise ConfigError("invalid_timeout") from e

        return cls(
            instance=instance,
            dialect=dialect,
            socket_path=default_socket if socket is None else socket,
            command=default_command if command is None else command,
            transport_kind=transport_kind,
            timeout=timeout,
        )

    @classmethod
    def from_declaration(cls: type[Target], declaration: TargetDict | dict[str, t.Any]) -> Target:
        """Build a Target from a config file declaration.

        Keys are case insensitive like in the collectd config. Unknown keys are an error.

        Raises:
        -------
            ConfigError: If the declaration is invalid

        """
        if not isinstance(declaration, dict):
            logger.error(f"Target declaration must be a mapping, not {type(declaration).__name__}")
            raise ConfigError("invalid_declaration")
        options = {str(k).lower(): v for k, v in declaration.items()}
        unknown = set(options).difference(valid_options)
        if unknown:
            logger.error(f"Option(s) {', '.join(sorted(unknown))} not allowed in a target declaration")
            raise ConfigError("invalid_option")
        for key in ["dialect", "instance"]:
            if key not in options:
                logger.error(f"Target declaration is missing required key {key}")
                raise ConfigError(f"missing_{key}")
        if not isinstance(options["dialect"], str):
            raise ConfigError("invalid_dialect")
        return cls.create(**options)

    def json(self) -> str:
        """Return a json version of the target. Used by the /config endpoint and in unit tests."""
        return json.dumps(self.asdict())

    def asdict(self) -> dict[str, t.Any]:
        """Return the target as a dict of plain values."""
        conf: dict[str, t.Any] = asdict(self)
        conf["dialect"] = self.dialect.value
        conf["transport_kind"] = self.transport_kind.value
        return conf


class TargetDict(t.TypedDict, total=False):
    """A TypedDict to help hold target declarations before they become Target objects.

    ``pdns_exporter.config.TargetDict`` behaves like a regular dict but works better with mypy
    because the individual keys has been annotated.
    """

    dialect: str
    instance: str
    command: str
    socket: str
    timeout: float
