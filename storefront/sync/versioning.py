"""Compare-and-swap helpers for ``lastUpdated`` version markers.

The client always sends its last-known marker; the holder of the
authoritative value decides whether the two match. Markers are opaque
strings compared for equality; ordering is only consulted to reject a
response that would move a caller backwards.
"""

from __future__ import annotations

from typing import Optional

from ..utils.datetime import parse_timestamp


def versions_match(known: Optional[str], current: Optional[str]) -> bool:
    """True when the caller's marker equals the authoritative one.

    An absent marker never matches: the caller has nothing to compare.
    """
    if not known or not current:
        return False
    return known == current


def is_older_version(candidate: Optional[str], reference: Optional[str]) -> bool:
    """True when ``candidate`` is a strictly older timestamp than ``reference``.

    Markers that do not parse as timestamps are not ordered and never count
    as older.
    """
    candidate_ts = parse_timestamp(candidate)
    reference_ts = parse_timestamp(reference)
    if candidate_ts is None or reference_ts is None:
        return False
    return candidate_ts < reference_ts


def compare_and_swap(
    known: Optional[str],
    current: str,
) -> bool:
    """Decide whether a write based on ``known`` may replace ``current``.

    A write without a marker is unconditional.
    """
    if not known:
        return True
    return versions_match(known, current)


__all__ = ["compare_and_swap", "is_older_version", "versions_match"]
