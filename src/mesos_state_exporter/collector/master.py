"""Collection cycle that turns master state into Prometheus metrics."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from ..state.client import FetchError
from ..state.models import Snapshot
from .base import MetricSample
from .registry import MetricRegistry

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Snapshot]


@dataclass
class CycleResult:
    """Outcome of one collection cycle."""

    snapshot_ok: bool
    samples: dict[str, tuple[MetricSample, ...]] = field(default_factory=dict)
    duration_seconds: float = 0.0


class MasterStateCollector(Collector):
    """Recomputes every registered metric from a fresh snapshot per scrape.

    Each cycle computes all sample sets locally before swapping them into
    the descriptors, and emits the sets it computed itself.  Overlapping
    scrapes therefore never see a half-reset descriptor.

    If the fetch fails the cycle proceeds with an empty snapshot: gauges
    report nothing rather than stale values, and the failure is visible
    through ``<namespace>_exporter_up`` and the scrape error counter.
    """

    def __init__(
        self,
        fetch: Fetcher,
        registry: MetricRegistry,
        namespace: str = "mesos",
        state_path: str = "/state",
        reset_attributes: bool = False,
    ) -> None:
        self._fetch = fetch
        self._registry = registry
        self._namespace = namespace
        self._state_path = state_path
        self._reset_attributes = reset_attributes
        self._error_count = 0
        self._error_lock = threading.Lock()

    @property
    def registry(self) -> MetricRegistry:
        return self._registry

    @property
    def error_count(self) -> int:
        return self._error_count

    def _fetch_snapshot(self) -> Snapshot | None:
        try:
            return self._fetch(self._state_path)
        except FetchError:
            logger.exception("Failed to fetch master state")
            with self._error_lock:
                self._error_count += 1
            return None

    def run_cycle(self) -> CycleResult:
        """Fetch a snapshot and publish freshly computed samples for every descriptor."""
        start = time.monotonic()
        snapshot = self._fetch_snapshot()
        result = CycleResult(snapshot_ok=snapshot is not None)
        if snapshot is None:
            snapshot = Snapshot.empty()

        computed = [(d, d.compute(snapshot)) for d in self._registry]
        for descriptor, samples in computed:
            if descriptor.additive and not self._reset_attributes:
                result.samples[descriptor.name] = descriptor.merge(samples)
            else:
                result.samples[descriptor.name] = descriptor.replace(samples)

        result.duration_seconds = time.monotonic() - start
        logger.debug(
            "Collected %d nodes, %d frameworks in %.3fs",
            len(snapshot.nodes), len(snapshot.frameworks), result.duration_seconds,
        )
        return result

    def _health_metrics(self, result: CycleResult) -> Iterator[Metric]:
        up = GaugeMetricFamily(
            f"{self._namespace}_exporter_up",
            "Whether the last fetch of master state succeeded",
        )
        up.add_metric([], 1.0 if result.snapshot_ok else 0.0)
        yield up

        errors = CounterMetricFamily(
            f"{self._namespace}_exporter_scrape_errors",
            "Failed fetches of master state",
        )
        errors.add_metric([], self._error_count)
        yield errors

        duration = GaugeMetricFamily(
            f"{self._namespace}_exporter_scrape_duration_seconds",
            "Time spent fetching and converting master state",
        )
        duration.add_metric([], result.duration_seconds)
        yield duration

    def collect(self) -> Iterator[Metric]:
        result = self.run_cycle()
        yield from self._health_metrics(result)
        for descriptor in self._registry:
            yield descriptor.to_metric_family(result.samples[descriptor.name])

    def describe(self) -> Iterator[Metric]:
        yield from self._health_metrics(CycleResult(snapshot_ok=False))
        for descriptor in self._registry:
            yield descriptor.to_metric_family(())
