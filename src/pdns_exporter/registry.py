"""``pdns_exporter.registry`` contains the TargetRegistry which holds the configured targets.

The registry is populated while the configuration is loaded and only read after that,
so it does no locking of its own. To reload configuration build a new registry and
swap it in, do not mutate one which is being read.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pdns_exporter.config import Target
from pdns_exporter.exceptions import ConfigError, TargetTypeError

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterator

logger = logging.getLogger(f"pdns_exporter.{__name__}")


class TargetRegistry:
    """Ordered collection of Target objects keyed by instance name."""

    def __init__(self) -> None:
        """Start out empty."""
        # dicts keep insertion order
        self._targets: dict[str, Target] = {}

    def add(self, target: Target) -> None:
        """Append a target.

        Raises:
        -------
            TargetTypeError: If target is not a Target
            ConfigError: If a target with the same instance name is already registered

        """
        if not isinstance(target, Target):
            raise TargetTypeError
        if target.instance in self._targets:
            logger.error(f"A target with instance name {target.instance} already exists")
            raise ConfigError("duplicate_instance")
        self._targets[target.instance] = target
        logger.debug(f"Added {target.dialect.value} target {target.instance}, total targets: {len(self)}")

    def for_each_ordered(self, fn: Callable[[Target], object]) -> None:
        """Call fn with each target in the order they were added."""
        for target in self:
            fn(target)

    def clear(self) -> None:
        """Forget all targets. Calling this on an empty registry is fine."""
        if self._targets:
            logger.debug(f"Releasing {len(self)} target(s)")
        self._targets.clear()

    def get(self, instance: str) -> Target | None:
        """Return the target with the instance name or None."""
        return self._targets.get(instance)

    def __iter__(self) -> Iterator[Target]:
        """Iterate over a snapshot of the targets in insertion order."""
        return iter(list(self._targets.values()))

    def __len__(self) -> int:
        """Return the number of targets."""
        return len(self._targets)

    def __contains__(self, instance: object) -> bool:
        """Check if a target with the instance name exists."""
        return instance in self._targets
