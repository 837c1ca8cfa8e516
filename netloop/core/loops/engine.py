from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Iterable, List, Optional

from netloop.config import Settings, settings as default_settings
from netloop.core.loops.fees import FeeSchedule, calculate_fee
from netloop.core.loops.finder import find_cycles
from netloop.core.loops.graph import (
    CompanyRef,
    ObligationGraph,
    ObligationGraphBuilder,
    PositionRecord,
    company_key,
    copy_graph,
    graph_edges,
)
from netloop.core.loops.ranking import rank_loops
from netloop.core.loops.settlement import calculate_settlement, validate_loop
from netloop.core.positions.service import net_position, positions_for_company
from netloop.schemas.loop import DetectedLoop
from netloop.schemas.position import Position
from netloop.utils.metrics import (
    DETECTION_DURATION_SECONDS,
    DETECTION_EVENTS_TOTAL,
    inc,
    observe,
)
from netloop.utils.observability import log_duration

logger = logging.getLogger(__name__)


def detect_loops(
    graph: ObligationGraph,
    max_depth: Optional[int] = None,
    *,
    limit: Optional[int] = None,
    enforce_disjoint: Optional[bool] = None,
    skip_visited_starts: Optional[bool] = None,
    time_budget_ms: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> List[DetectedLoop]:
    """Find, settle and rank loops in `graph`.

    Unset arguments fall back to settings (LOOP_MAX_DEPTH defaults to 4). Candidates
    that no longer form a valid cycle are dropped silently. An empty list is a
    normal outcome.
    """
    cfg = settings or default_settings
    depth = cfg.LOOP_MAX_DEPTH if max_depth is None else int(max_depth)
    budget_ms = cfg.LOOP_TIME_BUDGET_MS if time_budget_ms is None else int(time_budget_ms)

    started = time.perf_counter()
    deadline = started + budget_ms / 1000.0 if budget_ms > 0 else None
    inc(DETECTION_EVENTS_TOTAL, event="detect", result="start")

    with log_duration(logger, "loops.detect", nodes=len(graph), max_depth=depth):
        candidates = find_cycles(
            graph,
            depth,
            skip_visited_starts=(
                cfg.LOOP_SKIP_VISITED_STARTS if skip_visited_starts is None else skip_visited_starts
            ),
            deadline=deadline,
        )

        loops: List[DetectedLoop] = []
        dropped = 0
        for participants in candidates:
            loop = calculate_settlement(graph, participants)
            if loop is None or loop.total_value <= 0:
                dropped += 1
                continue
            loops.append(loop)

        ranked = rank_loops(
            loops,
            limit=cfg.LOOP_MAX_RESULTS if limit is None else limit,
            enforce_disjoint=(
                cfg.LOOP_ENFORCE_DISJOINT if enforce_disjoint is None else enforce_disjoint
            ),
            tie_tolerance=cfg.LOOP_TIE_TOLERANCE,
        )

    observe(DETECTION_DURATION_SECONDS, time.perf_counter() - started)
    inc(DETECTION_EVENTS_TOTAL, event="detect", result="success" if ranked else "empty")
    if dropped:
        inc(DETECTION_EVENTS_TOTAL, dropped, event="candidate", result="invalid")

    logger.info(
        "event=loops.detect_done candidates=%s dropped=%s loops=%s",
        len(candidates),
        dropped,
        len(ranked),
    )
    return ranked


class LoopDetectionEngine:
    """Detection over one immutable snapshot of companies and positions.

    All operations take an explicit company id; nothing assumes a current user.
    """

    def __init__(
        self,
        companies: Iterable[CompanyRef],
        positions: Iterable[PositionRecord],
        *,
        currency: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.company_ids: List[str] = [company_key(c) for c in list(companies)]

        builder = ObligationGraphBuilder(malformed_policy=self.settings.MALFORMED_POSITION_POLICY)
        self._graph = builder.build(self.company_ids, list(positions), currency=currency)
        self.skipped = dict(builder.skipped)
        self.positions: List[Position] = builder.accepted
        self.fee_schedule = FeeSchedule.from_settings(self.settings)

        logger.debug(
            "event=engine.graph_built nodes=%s edges=%s skipped=%s",
            len(self._graph),
            len(graph_edges(self._graph)),
            builder.skipped_total,
        )

    @property
    def graph(self) -> ObligationGraph:
        # Copy to isolate caller mutation from the snapshot.
        return copy_graph(self._graph)

    def detect_loops(self, max_depth: Optional[int] = None) -> List[DetectedLoop]:
        return detect_loops(self._graph, max_depth, settings=self.settings)

    def calculate_fee(self, loop: DetectedLoop) -> int:
        return calculate_fee(loop, self.fee_schedule)

    def validate_loop(self, participants: List[str]) -> bool:
        return validate_loop(self._graph, participants)

    def get_company_positions(self, company_id: str) -> List[Position]:
        if company_id not in self.company_ids:
            return []
        return positions_for_company(company_id, self.positions)

    def get_net_position(self, company_id: str) -> Decimal:
        return net_position(company_id, self.get_company_positions(company_id))
