from __future__ import annotations

from decimal import Decimal
from functools import cmp_to_key
from typing import Iterable, List, Optional, Set, Tuple

from netloop.schemas.loop import DetectedLoop

DEFAULT_TIE_TOLERANCE = Decimal("0.01")
DEFAULT_MAX_RESULTS = 10


def canonical_rotation(participants: List[str]) -> Tuple[str, ...]:
    """Rotation of the cycle starting at its smallest participant id."""
    if not participants:
        return tuple()
    pivot = participants.index(min(participants))
    return tuple(participants[pivot:] + participants[:pivot])


def deduplicate_rotations(loops: Iterable[DetectedLoop]) -> List[DetectedLoop]:
    """Stable dedupe of loops that are rotations of one another; keeps first occurrence."""
    seen: Set[Tuple[str, ...]] = set()
    out: List[DetectedLoop] = []
    for loop in loops:
        key = canonical_rotation(list(loop.participants))
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(loop)
    return out


def _make_comparator(tie_tolerance: Decimal):
    def compare(a: DetectedLoop, b: DetectedLoop) -> int:
        diff = b.total_value - a.total_value
        if abs(diff) > tie_tolerance:
            return 1 if diff > 0 else -1
        if b.efficiency > a.efficiency:
            return 1
        if b.efficiency < a.efficiency:
            return -1
        return 0

    return compare


def rank_loops(
    loops: Iterable[DetectedLoop],
    *,
    limit: Optional[int] = DEFAULT_MAX_RESULTS,
    enforce_disjoint: bool = True,
    tie_tolerance: Decimal = DEFAULT_TIE_TOLERANCE,
) -> List[DetectedLoop]:
    """Order loops by total value, then efficiency, and cap the result.

    Total values within `tie_tolerance` of each other count as equal and are
    ordered by efficiency. With `enforce_disjoint`, a loop sharing any participant
    with a higher-ranked kept loop is dropped. `limit=None` keeps everything.
    """
    if limit is not None and limit <= 0:
        return []

    candidates = deduplicate_rotations(loop for loop in loops if loop.total_value > 0)
    ordered = sorted(candidates, key=cmp_to_key(_make_comparator(tie_tolerance)))

    ranked: List[DetectedLoop] = []
    taken: Set[str] = set()
    for loop in ordered:
        if enforce_disjoint:
            if taken.intersection(loop.participants):
                continue
            taken.update(loop.participants)
        ranked.append(loop)
        if limit is not None and len(ranked) >= limit:
            break

    return ranked
