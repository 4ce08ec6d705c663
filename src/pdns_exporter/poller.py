"""``pdns_exporter.poller`` contains the PowerDNSPoller class which ties everything together.

The poller owns the TargetRegistry and has the three entry points used by the host:

    - ``configure()`` turns target declarations into Target objects
    - ``read_tick()`` reads all targets once and publishes the observations
    - ``shutdown()`` forgets all targets and observations
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from pdns_exporter import parser, transport
from pdns_exporter.collector import ObservationCollector
from pdns_exporter.config import LOCAL_SOCKET, Target, validate_socket_path
from pdns_exporter.exceptions import ConfigError, TransportError
from pdns_exporter.metrics import (
    increase_failure_reason_metric,
    pdns_exporter_read_duration_seconds,
    pdns_exporter_reads_total,
)
from pdns_exporter.registry import TargetRegistry
from pdns_exporter.submitter import MetricSubmitter, Observation
from pdns_exporter.typesdb import TypeRegistry

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from pdns_exporter.config import TargetDict

logger = logging.getLogger(f"pdns_exporter.{__name__}")


class PowerDNSPoller:
    """Poll the configured PowerDNS control sockets and publish the statistics to a sink.

    Attributes:
    -----------
        registry: The TargetRegistry with the configured targets.
        types: The TypeRegistry used by the submitter.
        sink: The ObservationCollector receiving a batch of observations per target per read.
        local_socket: The path the datagram transport binds to.

    """

    def __init__(
        self,
        *,
        sink: ObservationCollector | None = None,
        types: TypeRegistry | None = None,
        local_socket: str = LOCAL_SOCKET,
    ) -> None:
        """Create an unconfigured poller."""
        self.registry = TargetRegistry()
        self.types = TypeRegistry() if types is None else types
        self.sink = ObservationCollector() if sink is None else sink
        self.submitter = MetricSubmitter(types=self.types)
        self.local_socket = local_socket
        # all reads share the datagram local socket path, only one read at a time
        self._read_lock = threading.Lock()

    def configure(
        self,
        declarations: Iterable[TargetDict | dict[str, object]],
        local_socket: str | None = None,
    ) -> bool:
        """Validate declarations and add a Target for each to the registry.

        Invalid declarations are logged and skipped, the rest are still added.

        Args:
        -----
            declarations: An iterable of target declarations (dicts).
            local_socket: Optional path for the datagram transport to bind to.

        Returns:
        --------
            bool: True if all declarations were loaded OK, False if one or more was rejected.

        """
        ok = True
        if local_socket is not None:
            try:
                self.local_socket = validate_socket_path(local_socket, key="local_socket")
            except ConfigError:
                logger.exception(f"Invalid local_socket {local_socket}, keeping {self.local_socket}")
                ok = False

        count = 0
        for number, declaration in enumerate(declarations, start=1):
            try:
                target = Target.from_declaration(declaration)
                self.registry.add(target)
            except ConfigError:
                logger.exception(f"Rejecting target declaration {number}: {declaration}")
                ok = False
                continue
            count += 1

        logger.info(f"{count} target(s) loaded OK, total targets: {len(self.registry)}.")
        return ok

    def read_tick(self) -> None:
        """Read all targets in order. This never raises, failures are logged and the next target is read."""
        with self._read_lock:
            self.registry.for_each_ordered(self.read_target)

    def read_target(self, target: Target) -> list[Observation]:
        """Query, parse and submit a single target and publish the result.

        A target which fails publishes an empty batch so stale values are not exported.
        """
        pdns_exporter_reads_total.labels(server=target.instance, dialect=target.dialect.value).inc()
        observations: list[Observation] = []
        start = time.time()
        try:
            buffer = transport.query(target=target, local_socket=self.local_socket)
            for name, value in parser.decode(buffer, target):
                observation = self.submitter.submit(instance=target.instance, name=name, value=value)
                if observation is not None:
                    observations.append(observation)
        except TransportError as e:
            logger.warning(f"Unable to read {target.dialect.value} target {target.instance}: {e.args[0]}")
            increase_failure_reason_metric(failure_reason=e.step, instance=target.instance)
            observations = []
        except Exception:  # noqa: BLE001
            logger.error(  # noqa: TRY400
                f"Caught an unknown exception while reading target {target.instance} - exception details follow",
                exc_info=True,
            )
            increase_failure_reason_metric(failure_reason="other_failure", instance=target.instance)
            observations = []
        pdns_exporter_read_duration_seconds.labels(server=target.instance).observe(time.time() - start)

        logger.debug(f"Read {len(observations)} observation(s) from target {target.instance}")
        self.sink.publish(target.instance, observations)
        return observations

    def shutdown(self) -> None:
        """Release all targets and observations. Safe to call more than once, or before configure()."""
        with self._read_lock:
            self.registry.clear()
            self.sink.clear()
        logger.debug("Poller shut down")
