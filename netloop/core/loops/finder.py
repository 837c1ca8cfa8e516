"""Bounded-depth search for simple cycles in an obligation graph."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Set

from netloop.core.loops.graph import ObligationGraph

logger = logging.getLogger(__name__)

MIN_LOOP_PARTICIPANTS = 3


def _dfs(
    graph: ObligationGraph,
    start_node: str,
    current_node: str,
    path: List[str],
    path_set: Set[str],
    cycles: List[List[str]],
    remaining_depth: int,
) -> None:
    if remaining_depth <= 0:
        return

    for neighbor, amount in graph.get(current_node, {}).items():
        if amount <= 0:
            continue

        if neighbor == start_node and len(path) >= MIN_LOOP_PARTICIPANTS:
            cycles.append(list(path))
        elif neighbor not in path_set:
            path.append(neighbor)
            path_set.add(neighbor)
            _dfs(graph, start_node, neighbor, path, path_set, cycles, remaining_depth - 1)
            path.pop()
            path_set.discard(neighbor)


def find_cycles_from(graph: ObligationGraph, start_node: str, max_depth: int) -> List[List[str]]:
    """All simple cycles through `start_node` with at most `max_depth` edges.

    Each cycle is returned as its participant sequence starting at `start_node`.
    """
    cycles: List[List[str]] = []
    _dfs(graph, start_node, start_node, [start_node], {start_node}, cycles, max_depth)
    return cycles


def find_cycles(
    graph: ObligationGraph,
    max_depth: int = 4,
    *,
    skip_visited_starts: bool = True,
    deadline: Optional[float] = None,
) -> List[List[str]]:
    """Enumerate candidate cycles over the whole graph.

    With `skip_visited_starts`, every participant of a cycle found from one start
    node is excluded as a later start node. This drops most rotations of the same
    cycle, and occasionally a distinct overlapping one.

    `deadline` is a `time.perf_counter()` value checked between start nodes; once
    passed, the candidates found so far are returned.
    """
    if max_depth < 1:
        return []

    candidates: List[List[str]] = []
    visited: Set[str] = set()

    for start_node in list(graph.keys()):
        if deadline is not None and time.perf_counter() >= deadline:
            logger.warning(
                "event=loops.find_cycles_budget_exhausted candidates=%s",
                len(candidates),
            )
            break
        if skip_visited_starts and start_node in visited:
            continue

        found = find_cycles_from(graph, start_node, max_depth)
        candidates.extend(found)

        if skip_visited_starts:
            for cycle in found:
                visited.update(cycle)

    logger.debug(
        "event=loops.find_cycles_done nodes=%s max_depth=%s candidates=%s",
        len(graph),
        max_depth,
        len(candidates),
    )
    return candidates
