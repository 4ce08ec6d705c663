"""``pdns_exporter.lookup`` contains the table mapping PowerDNS statistic names to metric types.

Names missing from the table are dropped by the submitter. PowerDNS releases add new
statistics all the time so that is expected and not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType

logger = logging.getLogger(f"pdns_exporter.{__name__}")


@dataclass(frozen=True)
class MetricMapEntry:
    """One row of the lookup table."""

    raw_name: str
    """str: The statistic name exactly as sent by PowerDNS."""

    metric_type: str
    """str: The name of the metric type in the ``pdns_exporter.typesdb.TypeRegistry``."""

    sub_dimension: str | None = None
    """str | None: Optional extra label, like ``tcp`` or ``hit``."""


_ENTRIES = (
    # authoritative server questions
    MetricMapEntry("recursing-questions", "dns_question", "recurse"),
    MetricMapEntry("tcp-queries", "dns_question", "tcp"),
    MetricMapEntry("udp-queries", "dns_question", "udp"),
    # authoritative server answers
    MetricMapEntry("recursing-answers", "dns_answer", "recurse"),
    MetricMapEntry("tcp-answers", "dns_answer", "tcp"),
    MetricMapEntry("udp-answers", "dns_answer", "udp"),
    # caches
    MetricMapEntry("packetcache-hit", "cache_result", "packet-hit"),
    MetricMapEntry("packetcache-miss", "cache_result", "packet-miss"),
    MetricMapEntry("packetcache-size", "cache_size", "packet"),
    MetricMapEntry("query-cache-hit", "cache_result", "query-hit"),
    MetricMapEntry("query-cache-miss", "cache_result", "query-miss"),
    MetricMapEntry("latency", "latency"),
    # everything else
    MetricMapEntry("corrupt-packets", "io_packets", "corrupt"),
    MetricMapEntry("deferred-cache-inserts", "counter", "cache-deferred_insert"),
    MetricMapEntry("deferred-cache-lookup", "counter", "cache-deferred_lookup"),
    MetricMapEntry("qsize-a", "cache_size", "answers"),
    MetricMapEntry("qsize-q", "cache_size", "questions"),
    MetricMapEntry("servfail-packets", "io_packets", "servfail"),
    MetricMapEntry("timedout-packets", "io_packets", "timeout"),
    MetricMapEntry("udp4-answers", "dns_answer", "udp4"),
    MetricMapEntry("udp4-queries", "dns_question", "queries-udp4"),
    MetricMapEntry("udp6-answers", "dns_answer", "udp6"),
    MetricMapEntry("udp6-queries", "dns_question", "queries-udp6"),
    # recursor answers by rcode
    MetricMapEntry("noerror-answers", "dns_rcode", "NOERROR"),
    MetricMapEntry("nxdomain-answers", "dns_rcode", "NXDOMAIN"),
    MetricMapEntry("servfail-answers", "dns_rcode", "SERVFAIL"),
    # recursor cpu time
    MetricMapEntry("sys-msec", "cpu", "system"),
    MetricMapEntry("user-msec", "cpu", "user"),
    MetricMapEntry("qa-latency", "latency"),
    # recursor cache
    MetricMapEntry("cache-entries", "cache_size"),
    MetricMapEntry("cache-hits", "cache_result", "hit"),
    MetricMapEntry("cache-misses", "cache_result", "miss"),
    MetricMapEntry("questions", "dns_qtype", "total"),
)


def _build_table(entries: tuple[MetricMapEntry, ...]) -> MappingProxyType[str, MetricMapEntry]:
    """Index the entries by raw name, refusing duplicates."""
    table: dict[str, MetricMapEntry] = {}
    for entry in entries:
        if entry.raw_name in table:
            raise ValueError(f"Duplicate statistic {entry.raw_name} in lookup table")
        table[entry.raw_name] = entry
    return MappingProxyType(table)


LOOKUP_TABLE = _build_table(_ENTRIES)
"""Read-only mapping of raw statistic name to ``MetricMapEntry``."""


def get_entry(name: str) -> MetricMapEntry | None:
    """Return the lookup table entry for the statistic name, or None if the name is unknown."""
    return LOOKUP_TABLE.get(name)
