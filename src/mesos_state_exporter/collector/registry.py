"""The fixed set of Mesos master state metrics.

Every descriptor is paired with an extraction function that projects a
:class:`Snapshot` onto labelled values.  Names match the long-standing Go
exporter so existing dashboards keep working.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from ..state.attributes import AttributeTypeMismatch, normalize_label, normalize_label_list, string_value
from ..state.models import FrameworkResources, Resources, Snapshot
from ..state.ranges import ranges_size
from .base import Extractor, MetricDescriptor, MetricKind, MetricSample

logger = logging.getLogger(__name__)

SLAVE_LABELS = ("slave", "hostname")
FRAMEWORK_LABELS = ("framework",)

KIB = 1024


def _cpus(res: Resources) -> float:
    return res.cpus


def _mem_bytes(res: Resources) -> float:
    return res.mem * KIB


def _disk_bytes(res: Resources) -> float:
    return res.disk * KIB


def _port_count(res: Resources) -> float:
    return float(ranges_size(res.ports))


# (name, help, pool attribute on Node, value function)
SLAVE_METRICS: tuple[tuple[str, str, str, Callable[[Resources], float]], ...] = (
    ("cpus", "Total slave CPUs (fractional)", "total", _cpus),
    ("cpus_used", "Used slave CPUs (fractional)", "used", _cpus),
    ("cpus_unreserved", "Unreserved slave CPUs (fractional)", "unreserved", _cpus),
    ("mem_bytes", "Total slave memory in bytes", "total", _mem_bytes),
    ("mem_used_bytes", "Used slave memory in bytes", "used", _mem_bytes),
    ("mem_unreserved_bytes", "Unreserved slave memory in bytes", "unreserved", _mem_bytes),
    ("disk_bytes", "Total slave disk space in bytes", "total", _disk_bytes),
    ("disk_used_bytes", "Used slave disk space in bytes", "used", _disk_bytes),
    ("disk_unreserved_bytes", "Unreserved slave disk in bytes", "unreserved", _disk_bytes),
    ("ports", "Total slave ports", "total", _port_count),
    ("ports_used", "Used slave ports", "used", _port_count),
    ("ports_unreserved", "Unreserved slave ports", "unreserved", _port_count),
)

# Framework values are exported as reported, without unit conversion.
FRAMEWORK_METRICS: tuple[tuple[str, str, str, str], ...] = (
    ("cpu_used", "Framework cpu used", "used", "cpus"),
    ("disk_used", "Framework disk used", "used", "disk"),
    ("mem_used", "Framework memory used", "used", "mem"),
    ("cpu_offered", "Framework cpu offered", "offered", "cpus"),
    ("mem_offered", "Framework mem offered", "offered", "mem"),
    ("disk_offered", "Framework disk offered", "offered", "disk"),
)


@dataclass(frozen=True)
class MetricRegistry:
    """Closed, immutable set of metric descriptors built at startup."""

    descriptors: tuple[MetricDescriptor, ...]
    attribute_labels: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[MetricDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def get(self, name: str) -> MetricDescriptor | None:
        for descriptor in self.descriptors:
            if descriptor.name == name:
                return descriptor
        return None


def _slave_extractor(pool: str, value_of: Callable[[Resources], float]) -> Extractor:
    def extract(snapshot: Snapshot) -> Iterator[MetricSample]:
        for node in snapshot.nodes:
            yield MetricSample((node.pid, node.hostname), value_of(getattr(node, pool)))

    return extract


def _framework_extractor(pool: str, resource: str) -> Extractor:
    def extract(snapshot: Snapshot) -> Iterator[MetricSample]:
        for fw in snapshot.frameworks:
            res: FrameworkResources = getattr(fw, pool)
            yield MetricSample((fw.name,), getattr(res, resource))

    return extract


def _framework_active(snapshot: Snapshot) -> Iterator[MetricSample]:
    for fw in snapshot.frameworks:
        yield MetricSample((fw.name,), 1.0 if fw.active else 0.0)


def _attribute_extractor(labels: tuple[str, ...]) -> Extractor:
    def extract(snapshot: Snapshot) -> Iterator[MetricSample]:
        for node in snapshot.nodes:
            values = dict.fromkeys(labels, "")
            for key, attr in node.attributes.items():
                label = normalize_label(key)
                if label not in values:
                    continue
                try:
                    values[label] = string_value(attr)
                except AttributeTypeMismatch:
                    logger.debug("Skipping non-string attribute %s on %s", key, node.pid)
            yield MetricSample((node.pid, *(values[label] for label in labels)), 1.0)

    return extract


def build_registry(attribute_labels: Iterable[str] = (), namespace: str = "mesos") -> MetricRegistry:
    """Build the descriptor set.

    When *attribute_labels* is non-empty an additional
    untyped ``<namespace>_slave_attributes`` metric is registered, labelled by
    ``slave`` and the normalised attribute names.  Its value is always 1;
    it only exists to carry the attribute values as labels.
    """
    descriptors: list[MetricDescriptor] = []

    for name, doc, pool, value_of in SLAVE_METRICS:
        descriptors.append(MetricDescriptor(
            f"{namespace}_slave_{name}", doc, SLAVE_LABELS, _slave_extractor(pool, value_of),
        ))

    descriptors.append(MetricDescriptor(
        f"{namespace}_framework_active", "Active framework", FRAMEWORK_LABELS, _framework_active,
    ))
    for name, doc, pool, resource in FRAMEWORK_METRICS:
        descriptors.append(MetricDescriptor(
            f"{namespace}_framework_{name}", doc, FRAMEWORK_LABELS, _framework_extractor(pool, resource),
        ))

    labels = tuple(normalize_label_list(attribute_labels))
    if labels:
        if "slave" in labels:
            raise ValueError("attribute label 'slave' collides with the agent label")
        descriptors.append(MetricDescriptor(
            f"{namespace}_slave_attributes",
            "Attributes assigned to slaves",
            ("slave", *labels),
            _attribute_extractor(labels),
            kind=MetricKind.UNTYPED,
            additive=True,
        ))
        logger.info("Exporting slave attributes as labels: %s", ", ".join(labels))

    return MetricRegistry(descriptors=tuple(descriptors), attribute_labels=labels)
