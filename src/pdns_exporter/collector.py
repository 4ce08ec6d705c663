"""``pdns_exporter.collector`` contains the ObservationCollector which exposes PowerDNS statistics to Prometheus.

The poller publishes a batch of observations per target after every read. Scrapes return
the latest batch of each target, so a target which failed its latest read has no metrics.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.registry import Collector

from pdns_exporter.metrics import OBSERVATION_LABELS

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Iterator

    from pdns_exporter.submitter import Observation

logger = logging.getLogger(f"pdns_exporter.{__name__}")


def get_metric_name(metric_type: str) -> str:
    """Return the metric family name for a metric type, like ``pdns_dns_question``."""
    return f"pdns_{metric_type}"


class ObservationCollector(Collector):
    """Custom collector class holding the latest observations of each target."""

    def __init__(self) -> None:
        """Start with no observations."""
        self._lock = threading.Lock()
        self._batches: dict[str, list[Observation]] = {}

    def publish(self, instance: str, observations: Iterable[Observation]) -> None:
        """Replace all observations for instance with the new batch."""
        batch = list(observations)
        with self._lock:
            self._batches[instance] = batch
        logger.debug(f"Published {len(batch)} observation(s) for {instance}")

    def observations(self, instance: str) -> list[Observation]:
        """Return a copy of the latest observations for instance."""
        with self._lock:
            return list(self._batches.get(instance, []))

    def clear(self) -> None:
        """Forget all observations."""
        with self._lock:
            self._batches.clear()

    def describe(self) -> Iterator[CounterMetricFamily | GaugeMetricFamily]:
        """Return nothing, the metric families depend on what PowerDNS sends."""
        return iter(())

    def collect(self) -> Iterator[CounterMetricFamily | GaugeMetricFamily]:
        """Yield one metric family per metric type with a sample per observation."""
        with self._lock:
            snapshot = [obs for batch in self._batches.values() for obs in batch]

        # a statistic sent twice in one response would become a duplicate sample, keep the last
        latest: dict[tuple[str, str, str | None], Observation] = {}
        for obs in snapshot:
            latest[(obs.metric_type, obs.instance, obs.sub_dimension)] = obs

        families: dict[str, CounterMetricFamily | GaugeMetricFamily] = {}
        for obs in latest.values():
            family = families.get(obs.metric_type)
            if family is None:
                name = get_metric_name(obs.metric_type)
                if obs.kind.is_gauge:
                    family = GaugeMetricFamily(
                        name=name,
                        documentation=f"Gauge: PowerDNS {obs.metric_type} statistic.",
                        labels=OBSERVATION_LABELS,
                    )
                else:
                    family = CounterMetricFamily(
                        name=name,
                        documentation=f"Counter: PowerDNS {obs.metric_type} statistic.",
                        labels=OBSERVATION_LABELS,
                    )
                families[obs.metric_type] = family
            family.add_metric(labels=[obs.instance, obs.sub_dimension or "none"], value=obs.value)
        yield from families.values()
