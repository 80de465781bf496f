"""Metric descriptors and the samples they carry between scrapes."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from prometheus_client.core import GaugeMetricFamily, UnknownMetricFamily
from prometheus_client.metrics_core import Metric

from ..state.models import Snapshot


@dataclass(frozen=True)
class MetricSample:
    """A single labelled value of a metric."""

    labels: tuple[str, ...]
    value: float


Extractor = Callable[[Snapshot], Iterable[MetricSample]]


class MetricKind(enum.Enum):
    GAUGE = "gauge"
    UNTYPED = "untyped"


class MetricDescriptor:
    """A named metric paired with the function that recomputes it.

    The current sample set is an immutable tuple.  Writers build a new
    tuple and swap it in under the descriptor's lock, so readers always
    see a complete set from one cycle.
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Iterable[str],
        extract: Extractor,
        kind: MetricKind = MetricKind.GAUGE,
        additive: bool = False,
    ) -> None:
        self.name = name
        self.documentation = documentation
        self.labelnames = tuple(labelnames)
        self.kind = kind
        self.additive = additive
        self._extract = extract
        self._samples: tuple[MetricSample, ...] = ()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"MetricDescriptor({self.name!r}, labels={self.labelnames!r})"

    @property
    def samples(self) -> tuple[MetricSample, ...]:
        return self._samples

    def compute(self, snapshot: Snapshot) -> tuple[MetricSample, ...]:
        """Run the extraction function; a repeated label tuple keeps the last value."""
        by_labels: dict[tuple[str, ...], float] = {}
        for sample in self._extract(snapshot):
            if len(sample.labels) != len(self.labelnames):
                raise ValueError(
                    f"{self.name}: expected {len(self.labelnames)} label values, got {len(sample.labels)}"
                )
            by_labels[sample.labels] = float(sample.value)
        return tuple(MetricSample(labels, value) for labels, value in by_labels.items())

    def replace(self, samples: Iterable[MetricSample]) -> tuple[MetricSample, ...]:
        """Swap in *samples* as the complete new set."""
        new = tuple(samples)
        with self._lock:
            self._samples = new
        return new

    def merge(self, samples: Iterable[MetricSample]) -> tuple[MetricSample, ...]:
        """Set *samples* on top of the current set without clearing it."""
        with self._lock:
            merged = {s.labels: s.value for s in self._samples}
            for sample in samples:
                merged[sample.labels] = sample.value
            self._samples = tuple(MetricSample(labels, value) for labels, value in merged.items())
            return self._samples

    def to_metric_family(self, samples: Iterable[MetricSample] | None = None) -> Metric:
        """Build a prometheus_client metric family from *samples* (current set by default)."""
        family_cls = UnknownMetricFamily if self.kind is MetricKind.UNTYPED else GaugeMetricFamily
        family = family_cls(self.name, self.documentation, labels=self.labelnames)
        for sample in self._samples if samples is None else samples:
            family.add_metric(list(sample.labels), sample.value)
        return family
