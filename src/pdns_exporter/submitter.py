"""``pdns_exporter.submitter`` turns (name, value) pairs into typed Observation objects.

Unknown statistics are dropped quietly, type registry problems and values which are not
numbers are dropped loudly. Nothing in here raises to the caller.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pdns_exporter.exceptions import TypeRegistryError, ValueConversionError
from pdns_exporter.lookup import get_entry
from pdns_exporter.metrics import increase_dropped_metric

if TYPE_CHECKING:  # pragma: no cover
    from pdns_exporter.typesdb import MetricType, TypeRegistry, ValueKind

logger = logging.getLogger(f"pdns_exporter.{__name__}")

# strtod() style: optional sign, decimal number with optional exponent, or inf/nan
FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
# strtoll() with base 0: hex with 0x, octal with a leading 0, otherwise decimal
INT_PREFIX = re.compile(r"\s*([+-]?)(?:0[xX]([0-9a-fA-F]+)|(0[0-7]*)|([1-9]\d*))")


@dataclass(frozen=True)
class Observation:
    """A single typed value ready for the dispatch sink."""

    metric_type: str
    instance: str
    sub_dimension: str | None
    value: int | float
    kind: ValueKind
    timestamp: float


def parse_float(value: str) -> float:
    """Parse the longest float prefix of value.

    Trailing garbage after the number is ignored, so ``"3.5ms"`` becomes ``3.5``.

    Raises:
    -------
        ValueConversionError: If value does not start with a number

    """
    match = FLOAT_PREFIX.match(value)
    if match is None:
        raise ValueConversionError(f"Cannot convert '{value}' to a floating point number.")
    return float(match.group(1))


def parse_int(value: str) -> int:
    """Parse the longest integer prefix of value, with ``0x`` meaning hex and a leading ``0`` meaning octal.

    Trailing garbage after the number is ignored, so ``"42abc"`` becomes ``42``.

    Raises:
    -------
        ValueConversionError: If value does not start with an integer

    """
    match = INT_PREFIX.match(value)
    if match is None:
        raise ValueConversionError(f"Cannot convert '{value}' to an integer number.")
    sign, hexdigits, octdigits, decdigits = match.groups()
    if hexdigits is not None:
        number = int(hexdigits, 16)
    elif octdigits is not None:
        number = int(octdigits, 8)
    else:
        number = int(decdigits)
    return -number if sign == "-" else number


class MetricSubmitter:
    """Validate and convert statistics using the lookup table and a type registry."""

    def __init__(self, types: TypeRegistry) -> None:
        """Keep a reference to the type registry."""
        self.types = types

    def resolve_type(self, metric_type: str) -> MetricType:
        """Return the registered type, making sure it is usable.

        Raises:
        -------
            TypeRegistryError: If the type is unknown or carries more than one value

        """
        registered = self.types.get(metric_type)
        if registered is None:
            raise TypeRegistryError(
                f"The lookup table returned type '{metric_type}' but it is not in the type registry.",
                "unknown_type",
            )
        if registered.arity != 1:
            raise TypeRegistryError(
                f"Type '{metric_type}' has {registered.arity} data sources but only one is supported.",
                "invalid_arity",
            )
        return registered

    def submit(self, instance: str, name: str, value: str) -> Observation | None:
        """Return an Observation for the statistic, or None if it was dropped."""
        entry = get_entry(name)
        if entry is None:
            logger.debug(f"Not found in lookup table: {name} = {value}")
            increase_dropped_metric(reason="unknown_statistic", instance=instance)
            return None

        try:
            metric_type = self.resolve_type(entry.metric_type)
        except TypeRegistryError as e:
            logger.error(f"Dropping statistic {name} from {instance}: {e.args[0]}")  # noqa: TRY400
            increase_dropped_metric(reason=e.args[1], instance=instance)
            return None

        try:
            number: int | float = parse_float(value) if metric_type.kind.is_gauge else parse_int(value)
        except ValueConversionError as e:
            logger.error(f"Dropping statistic {name} from {instance}: {e}")  # noqa: TRY400
            increase_dropped_metric(reason="invalid_value", instance=instance)
            return None

        return Observation(
            metric_type=entry.metric_type,
            instance=instance,
            sub_dimension=entry.sub_dimension,
            value=number,
            kind=metric_type.kind,
            timestamp=time.time(),
        )
