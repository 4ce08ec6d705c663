"""The ``pdns_exporter.metrics`` module contains definition of the internal metrics for pdns_exporter.

The PowerDNS statistics themselves are exposed by ``pdns_exporter.collector.ObservationCollector``
and are prefixed with ``pdns_``. The metrics about the exporter itself defined here are
prefixed with ``pdns_exporter_``.
"""

from __future__ import annotations

import logging

from prometheus_client.core import (
    Counter,
    Histogram,
    Info,
)
from prometheus_client.utils import INF

from pdns_exporter.exceptions import UnknownFailureReasonError
from pdns_exporter.version import __version__

logger = logging.getLogger(f"pdns_exporter.{__name__}")

# the labels used on the observation metrics
OBSERVATION_LABELS = ["server", "type_instance"]

FAILURE_REASONS = [
    "socket",
    "unlink",
    "bind",
    "chmod",
    "connect",
    "send",
    "recv",
    "other_failure",
]
"""FAILURE_REASONS is a list of the possible failure modes which might show up in the
pdns_exporter_read_failures_total metric. All but ``other_failure`` are socket operations."""

DROP_REASONS = [
    "unknown_statistic",
    "unknown_type",
    "invalid_arity",
    "invalid_value",
]
"""DROP_REASONS is a list of the reasons a statistic can be dropped for in the
pdns_exporter_statistics_dropped_total metric."""


pdns_exporter_build_version = Info(
    name="pdns_exporter_build_version",
    documentation="Info: The version of pdns_exporter",
)
"""``pdns_exporter_build_version`` is a persistent Info metric which contains the version of ``pdns_exporter``."""
pdns_exporter_build_version.info({"version": __version__})

pdns_exporter_http_requests_total = Counter(
    name="pdns_exporter_http_requests_total",
    documentation="Counter: The total number of HTTP requests received by this exporter since start.",
    labelnames=["path"],
)
"""``pdns_exporter_http_requests_total`` is a Counter keeping track of the number of HTTP requests by path."""

pdns_exporter_http_responses_total = Counter(
    name="pdns_exporter_http_responses_total",
    documentation="Counter: The total number of HTTP responses sent by this exporter since start.",
    labelnames=["path", "response_code"],
)
"""``pdns_exporter_http_responses_total`` is a Counter keeping track of HTTP responses by path and response code."""

pdns_exporter_reads_total = Counter(
    name="pdns_exporter_reads_total",
    documentation="Counter: The total number of control socket reads attempted by this exporter since start. This counter is increased once per target per read interval.",  # noqa: E501
    labelnames=["server", "dialect"],
)
"""``pdns_exporter_reads_total`` is the Counter keeping track of how many control socket reads were attempted.

This metric has two labels:
    - ``server`` is the instance name of the target
    - ``dialect`` is ``server`` or ``recursor``
"""

pdns_exporter_read_failures_total = Counter(
    name="pdns_exporter_read_failures_total",
    documentation="Counter: The total number of failed control socket reads by server and failure reason.",
    labelnames=["server", "reason"],
)
"""``pdns_exporter_read_failures_total`` is the Counter keeping track of failed reads.

The ``reason`` label is the socket operation which failed (see ``FAILURE_REASONS``) or
``other_failure`` for anything unexpected.
"""

pdns_exporter_read_duration_seconds = Histogram(
    name="pdns_exporter_read_duration_seconds",
    documentation="Histogram: Time spent querying a control socket and processing the response.",
    labelnames=["server"],
    buckets=(
        0.001,
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        INF,
    ),
)
"""``pdns_exporter_read_duration_seconds`` is the Histogram keeping track of how long each read took."""

pdns_exporter_statistics_dropped_total = Counter(
    name="pdns_exporter_statistics_dropped_total",
    documentation="Counter: The total number of statistics received from PowerDNS but not exported, by server and reason.",  # noqa: E501
    labelnames=["server", "reason"],
)
"""``pdns_exporter_statistics_dropped_total`` counts statistics which were dropped (see ``DROP_REASONS``).

Statistics missing from the lookup table are counted as ``unknown_statistic``. This is normal
when PowerDNS is newer than the lookup table.
"""


def increase_failure_reason_metric(failure_reason: str, instance: str) -> None:
    """Increase the read failure counter.

    Raises:
    -------
        UnknownFailureReasonError: If failure_reason is not in FAILURE_REASONS

    """
    if failure_reason not in FAILURE_REASONS:
        # unknown failure_reason, this is a bug
        raise UnknownFailureReasonError(failure_reason)
    pdns_exporter_read_failures_total.labels(server=instance, reason=failure_reason).inc()


def increase_dropped_metric(reason: str, instance: str) -> None:
    """Increase the dropped statistics counter.

    Raises:
    -------
        UnknownFailureReasonError: If reason is not in DROP_REASONS

    """
    if reason not in DROP_REASONS:
        raise UnknownFailureReasonError(reason)
    pdns_exporter_statistics_dropped_total.labels(server=instance, reason=reason).inc()
