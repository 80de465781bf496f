"""Codec for the compact range encoding Mesos uses for port pools.

A port pool arrives as ``"[31000-32000, 33000-33010]"``: a comma-separated
list of inclusive ``lo-hi`` pairs, optionally wrapped in brackets or quotes.
"""

from __future__ import annotations

from typing import Iterable

Range = tuple[int, int]

MAX_BOUND = 2**64 - 1


class RangeParseError(ValueError):
    """Raised when a range-list string is malformed."""


def _parse_bound(token: str, raw: str) -> int:
    text = raw.strip()
    if not text.isdigit() or not text.isascii():
        raise RangeParseError(f"bad range bound {raw!r} in {token!r}")
    value = int(text)
    if value > MAX_BOUND:
        raise RangeParseError(f"range bound {raw!r} in {token!r} out of range")
    return value


def parse_ranges(text: str) -> list[Range]:
    """Parse *text* into a list of inclusive ``(lo, hi)`` pairs.

    An empty string (after stripping decoration) yields ``[]``.  Any bad
    token aborts the whole parse with :class:`RangeParseError`.
    """
    body = text.strip("[]\"")
    if not body:
        return []

    ranges: list[Range] = []
    for token in body.split(","):
        parts = token.split("-", 1)
        if len(parts) != 2:
            raise RangeParseError(f"bad range: {token!r}")
        lo, hi = _parse_bound(token, parts[0]), _parse_bound(token, parts[1])
        if lo > hi:
            raise RangeParseError(f"bad range: {token!r} has lower bound above upper")
        ranges.append((lo, hi))
    return ranges


def ranges_size(ranges: Iterable[Range]) -> int:
    """Number of elements covered by *ranges*; overlaps are counted twice."""
    return sum(hi - lo + 1 for lo, hi in ranges)
