"""``pdns_exporter.typesdb`` contains the metric type registry.

Every entry in the lookup table names a metric type. The type decides how many values
a statistic carries and whether the value is an absolute gauge or an ever increasing
counter. The built-in types mirror the collectd ``types.db`` entries used by the
lookup table, more types can be added from the config file.
"""

from __future__ import annotations

import enum
import logging
import typing as t
from dataclasses import dataclass

from pdns_exporter.exceptions import ConfigError

logger = logging.getLogger(f"pdns_exporter.{__name__}")


class ValueKind(enum.Enum):
    """The kind of value a metric type carries."""

    GAUGE = "gauge"
    COUNTER = "counter"
    DERIVE = "derive"
    ABSOLUTE = "absolute"

    @property
    def is_gauge(self) -> bool:
        """Gauges are floating point, everything else is an integer counter."""
        return self is ValueKind.GAUGE


@dataclass(frozen=True)
class MetricType:
    """A single registered metric type."""

    name: str
    """str: The name of the type, referenced by ``MetricMapEntry.metric_type``."""

    kind: ValueKind
    """ValueKind: Decides if values are parsed as floats (gauge) or integers (everything else)."""

    arity: int = 1
    """int: The number of values (data sources) the type carries."""

    description: str = ""
    """str: Used as documentation for the exposed metric family."""

    @classmethod
    def create(
        cls: type[MetricType],
        *,
        name: str,
        kind: str | ValueKind = ValueKind.GAUGE,
        arity: int = 1,
        description: str = "",
    ) -> MetricType:
        """Return a MetricType after validating the values."""
        if isinstance(kind, str):
            try:
                kind = ValueKind(kind.lower())
            except ValueError as e:
                logger.exception(f"Unknown value kind {kind} for type {name}")
                raise ConfigError("invalid_type_kind") from e
        if not isinstance(kind, ValueKind):
            logger.error(f"Value kind for type {name} must be a string, not {type(kind).__name__}")
            raise ConfigError("invalid_type_kind")
        if isinstance(arity, bool) or not isinstance(arity, int) or arity < 1:
            logger.error(f"Invalid arity {arity} for type {name}")
            raise ConfigError("invalid_type_arity")
        return cls(name=name, kind=kind, arity=arity, description=description or f"{kind.value} {name}")


BUILTIN_TYPES = (
    MetricType("cache_result", ValueKind.COUNTER, 1, "Cache hits and misses."),
    MetricType("cache_size", ValueKind.GAUGE, 1, "Number of entries in a cache."),
    MetricType("counter", ValueKind.COUNTER, 1, "Generic counter."),
    MetricType("cpu", ValueKind.COUNTER, 1, "CPU time in milliseconds."),
    MetricType("dns_answer", ValueKind.COUNTER, 1, "DNS answers sent."),
    MetricType("dns_qtype", ValueKind.COUNTER, 1, "DNS questions by query type."),
    MetricType("dns_question", ValueKind.COUNTER, 1, "DNS questions received."),
    MetricType("dns_rcode", ValueKind.COUNTER, 1, "DNS answers by response code."),
    # rx and tx, statistics mapped to this type are refused by the submitter
    MetricType("io_packets", ValueKind.COUNTER, 2, "Packets received and transmitted."),
    MetricType("latency", ValueKind.GAUGE, 1, "Average latency in microseconds."),
)


class TypeRegistry:
    """Registry of metric types, keyed by type name."""

    def __init__(self, types: t.Iterable[MetricType] = BUILTIN_TYPES) -> None:
        """Populate the registry with the given types (the built-in types by default)."""
        self._types: dict[str, MetricType] = {}
        for metric_type in types:
            self.register(metric_type)

    def register(self, metric_type: MetricType) -> None:
        """Add or replace a type."""
        if metric_type.name in self._types:
            logger.debug(f"Replacing metric type {metric_type.name}")
        self._types[metric_type.name] = metric_type

    def get(self, name: str) -> MetricType | None:
        """Return the named type or None."""
        return self._types.get(name)

    def __contains__(self, name: object) -> bool:
        """Check if a type name is registered."""
        return name in self._types

    def __len__(self) -> int:
        """Return the number of registered types."""
        return len(self._types)

    def load(self, types: dict[str, dict[str, t.Any]]) -> None:
        """Register types from the ``types`` key of the config file.

        Raises:
        -------
            ConfigError: If a type definition is invalid.

        """
        for name, definition in types.items():
            if not isinstance(definition, dict):
                logger.error(f"Type {name} must be a mapping, not {type(definition).__name__}")
                raise ConfigError("invalid_type")
            try:
                self.register(MetricType.create(name=name, **definition))
            except TypeError as e:
                logger.exception(f"Unable to parse type {name}: {definition}")
                raise ConfigError("invalid_type") from e
        logger.debug(f"Loaded {len(types)} type(s) from config, total types: {len(self)}")
