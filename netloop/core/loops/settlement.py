from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Sequence

from netloop.core.loops.finder import MIN_LOOP_PARTICIPANTS
from netloop.core.loops.graph import ObligationGraph, edge_weight
from netloop.schemas.loop import DetectedLoop

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


def _cycle_pairs(participants: Sequence[str]):
    count = len(participants)
    for i, current in enumerate(participants):
        yield current, participants[(i + 1) % count]


def _is_simple_cycle(participants: Sequence[str]) -> bool:
    return (
        len(participants) >= MIN_LOOP_PARTICIPANTS
        and len(set(participants)) == len(participants)
    )


def validate_loop(graph: ObligationGraph, participants: Sequence[str]) -> bool:
    """Return True if every consecutive edge (including wraparound) carries a positive weight."""
    if len(participants) < MIN_LOOP_PARTICIPANTS:
        return False
    return all(edge_weight(graph, u, v) > 0 for u, v in _cycle_pairs(participants))


def minimum_flow(graph: ObligationGraph, participants: Sequence[str]) -> Decimal:
    """Smallest edge weight around the cycle; 0 for an empty cycle."""
    if not participants:
        return ZERO
    return min(edge_weight(graph, u, v) for u, v in _cycle_pairs(participants))


def calculate_settlement(
    graph: ObligationGraph, participants: Sequence[str]
) -> Optional[DetectedLoop]:
    """Net the cycle `participants` (in cycle order) against the graph.

    Returns None when the sequence is not a valid closed cycle of positive edges.
    """
    if not _is_simple_cycle(participants):
        return None

    raw: Dict[str, Decimal] = {}
    total = ZERO
    for current, nxt in _cycle_pairs(participants):
        amount = edge_weight(graph, current, nxt)
        if amount <= 0:
            logger.debug(
                "event=loops.settlement_invalid_edge from=%s to=%s", current, nxt
            )
            return None
        raw[current] = raw.get(current, ZERO) - amount
        raw[nxt] = raw.get(nxt, ZERO) + amount
        total += amount

    if total <= 0:
        return None

    bottleneck = minimum_flow(graph, participants)
    if bottleneck <= 0:
        return None

    # Scale the raw flow down to what the weakest edge can carry.
    scale = bottleneck / total
    settlements = {
        participant: (raw.get(participant, ZERO) * scale).quantize(CENT, rounding=ROUND_HALF_UP)
        for participant in participants
    }
    _absorb_residue(settlements, participants)

    return DetectedLoop(
        participants=list(participants),
        settlements=settlements,
        total_value=bottleneck,
        efficiency=scale,
    )


def _absorb_residue(settlements: Dict[str, Decimal], participants: Sequence[str]) -> None:
    """Push the cent rounding residue onto the largest share so the loop sums to zero.

    Ties go to the earliest participant in loop order.
    """
    residue = sum(settlements.values(), ZERO)
    if residue == 0:
        return
    target = max(participants, key=lambda p: abs(settlements[p]))
    settlements[target] -= residue
    logger.debug(
        "event=loops.settlement_residue participants=%s residue=%s absorbed_by=%s",
        len(participants),
        residue,
        target,
    )


def settlement_residue(loop: DetectedLoop) -> Decimal:
    """Sum of the settlements; zero for every loop built by `calculate_settlement`."""
    return sum(loop.settlements.values(), ZERO)
