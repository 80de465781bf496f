"""Snapshot of Mesos master state decoded from the ``/state`` endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .attributes import AttributeValue
from .ranges import Range, RangeParseError, parse_ranges

logger = logging.getLogger(__name__)


def _decode_ports(raw: Any) -> tuple[Range, ...]:
    """Decode a port pool, falling back to no ports when it is malformed."""
    if raw is None:
        return ()
    try:
        return tuple(parse_ranges(str(raw)))
    except RangeParseError as exc:
        logger.warning("Ignoring malformed port range %r: %s", raw, exc)
        return ()


@dataclass(frozen=True)
class Resources:
    """Agent resource pool. Memory and disk are in KiB as reported by Mesos."""

    cpus: float = 0.0
    mem: float = 0.0
    disk: float = 0.0
    ports: tuple[Range, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Resources:
        data = data or {}
        return cls(
            cpus=float(data.get("cpus") or 0.0),
            mem=float(data.get("mem") or 0.0),
            disk=float(data.get("disk") or 0.0),
            ports=_decode_ports(data.get("ports")),
        )


@dataclass(frozen=True)
class FrameworkResources:
    """Framework resource totals; no port pool at this level."""

    cpus: float = 0.0
    mem: float = 0.0
    disk: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FrameworkResources:
        data = data or {}
        return cls(
            cpus=float(data.get("cpus") or 0.0),
            mem=float(data.get("mem") or 0.0),
            disk=float(data.get("disk") or 0.0),
        )


@dataclass(frozen=True)
class Node:
    """A Mesos agent (slave) and its resource pools."""

    pid: str
    hostname: str
    total: Resources = field(default_factory=Resources)
    used: Resources = field(default_factory=Resources)
    unreserved: Resources = field(default_factory=Resources)
    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            pid=data.get("pid", ""),
            hostname=data.get("hostname", ""),
            total=Resources.from_dict(data.get("resources")),
            used=Resources.from_dict(data.get("used_resources")),
            unreserved=Resources.from_dict(data.get("unreserved_resources")),
            attributes={
                key: AttributeValue.from_json(value)
                for key, value in (data.get("attributes") or {}).items()
            },
        )


@dataclass(frozen=True)
class Framework:
    """A framework registered with the master."""

    name: str
    active: bool = False
    used: FrameworkResources = field(default_factory=FrameworkResources)
    offered: FrameworkResources = field(default_factory=FrameworkResources)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Framework:
        return cls(
            name=data.get("name", ""),
            active=bool(data.get("active", False)),
            used=FrameworkResources.from_dict(data.get("used_resources")),
            offered=FrameworkResources.from_dict(data.get("offered_resources")),
        )


@dataclass(frozen=True)
class Snapshot:
    """Agents and frameworks from one fetch of master state."""

    nodes: tuple[Node, ...] = ()
    frameworks: tuple[Framework, ...] = ()

    @classmethod
    def empty(cls) -> Snapshot:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snapshot:
        return cls(
            nodes=tuple(Node.from_dict(s) for s in data.get("slaves") or []),
            frameworks=tuple(Framework.from_dict(f) for f in data.get("frameworks") or []),
        )
