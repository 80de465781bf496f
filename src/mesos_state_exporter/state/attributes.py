"""Label normalisation and typed access to free-form agent attributes."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Iterable

_INVALID_LABEL_CHARS = re.compile(r"[^A-Za-z0-9_]")


class AttributeTypeMismatch(TypeError):
    """Raised when an attribute value is not a plain string."""


class AttributeKind(enum.Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AttributeValue:
    """An agent attribute value tagged with its JSON shape."""

    kind: AttributeKind
    value: Any = None

    @classmethod
    def from_json(cls, raw: Any) -> AttributeValue:
        # bool is a subclass of int, so it must be checked first
        if isinstance(raw, bool):
            return cls(AttributeKind.BOOLEAN, raw)
        if isinstance(raw, (int, float)):
            return cls(AttributeKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(AttributeKind.STRING, raw)
        return cls(AttributeKind.UNKNOWN, raw)


def normalize_label(name: str) -> str:
    """Turn an arbitrary attribute key into a valid Prometheus label name.

    Every character outside ``[A-Za-z0-9_]`` is replaced with ``_``.  The
    mapping is idempotent, so it is safe to apply to already-normalised names.
    """
    return _INVALID_LABEL_CHARS.sub("_", name)


def normalize_label_list(names: Iterable[str]) -> list[str]:
    """Normalise *names*, dropping duplicates while keeping the first occurrence."""
    seen: list[str] = []
    for name in names:
        label = normalize_label(name)
        if label not in seen:
            seen.append(label)
    return seen


def string_value(attr: AttributeValue) -> str:
    """Return the string carried by *attr*.

    Raises :class:`AttributeTypeMismatch` for numbers, booleans and
    structured values.
    """
    if attr.kind is AttributeKind.STRING:
        return attr.value
    raise AttributeTypeMismatch(f"attribute is a {attr.kind.value}, not a string")
