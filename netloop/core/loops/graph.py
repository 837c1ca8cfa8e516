"""Obligation graph construction.

The graph maps debtor -> {creditor: amount}: an edge A->B of weight W means
"A owes B net W". A `credit` position recorded by A against B is folded in as
the edge B->A.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from netloop.config import settings
from netloop.schemas.position import Company, Position
from netloop.utils.exceptions import MalformedPositionException
from netloop.utils.metrics import POSITIONS_SKIPPED_TOTAL, inc

logger = logging.getLogger(__name__)

ObligationGraph = Dict[str, Dict[str, Decimal]]

CompanyRef = Union[str, Company]
PositionRecord = Union[Position, Mapping[str, Any]]

SKIP_MALFORMED = "malformed"
SKIP_SETTLED = "settled"
SKIP_UNKNOWN_COMPANY = "unknown_company"


def company_key(company: CompanyRef) -> str:
    if isinstance(company, Company):
        return company.id
    return str(company)


class ObligationGraphBuilder:
    """Builds an `ObligationGraph` from a snapshot of companies and positions.

    Malformed records are handled per `malformed_policy`:
    - "skip": drop the record and count it (default)
    - "fail": raise MalformedPositionException
    """

    def __init__(self, *, malformed_policy: Optional[str] = None):
        policy = (malformed_policy or settings.MALFORMED_POSITION_POLICY).strip().lower()
        if policy not in {"skip", "fail"}:
            raise ValueError(f"Unknown malformed position policy: {malformed_policy!r}")
        self.malformed_policy = policy
        self.graph: ObligationGraph = {}
        self.skipped: Dict[str, int] = {}
        self.accepted: List[Position] = []

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())

    def build(
        self,
        companies: Iterable[CompanyRef],
        positions: Iterable[PositionRecord],
        *,
        currency: Optional[str] = None,
    ) -> ObligationGraph:
        # Snapshot inputs so a concurrent writer cannot change them mid-build.
        company_ids = [company_key(c) for c in list(companies)]
        records = list(positions)

        self.graph = {cid: {} for cid in company_ids}
        self.skipped = {}
        self.accepted = []
        known = set(company_ids)

        for index, record in enumerate(records):
            position = self._coerce(record, index)
            if position is None:
                continue
            if position.is_settled:
                self._skip(SKIP_SETTLED)
                continue
            if currency is not None and position.currency != currency:
                continue
            if position.company_id not in known:
                self._skip(SKIP_UNKNOWN_COMPANY)
                continue

            self.accepted.append(position)
            self._add_obligation(position.debtor_id, position.creditor_id, position.amount)

        if self.skipped:
            logger.info(
                "event=graph.positions_skipped total=%s reasons=%s",
                self.skipped_total,
                self.skipped,
            )
        return self.graph

    def _coerce(self, record: PositionRecord, index: int) -> Optional[Position]:
        if isinstance(record, Position):
            return record
        try:
            return Position.model_validate(record)
        except ValidationError as exc:
            if self.malformed_policy == "fail":
                raise MalformedPositionException(
                    f"Position #{index} failed validation",
                    details={"index": index, "errors": exc.errors(include_url=False)},
                ) from exc
            logger.warning(
                "event=graph.position_malformed index=%s errors=%s",
                index,
                exc.error_count(),
            )
            self._skip(SKIP_MALFORMED)
            return None

    def _skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1
        inc(POSITIONS_SKIPPED_TOTAL, reason=reason)

    def _add_obligation(self, debtor: str, creditor: str, amount: Decimal) -> None:
        if debtor == creditor:
            return
        self.graph.setdefault(creditor, {})
        edges = self.graph.setdefault(debtor, {})
        edges[creditor] = edges.get(creditor, Decimal("0")) + amount


def build_graph(
    companies: Iterable[CompanyRef],
    positions: Iterable[PositionRecord],
    *,
    currency: Optional[str] = None,
    malformed_policy: Optional[str] = None,
) -> ObligationGraph:
    """Build the obligation graph for all unsettled positions."""
    return ObligationGraphBuilder(malformed_policy=malformed_policy).build(
        companies, positions, currency=currency
    )


def edge_weight(graph: ObligationGraph, debtor: str, creditor: str) -> Decimal:
    return graph.get(debtor, {}).get(creditor, Decimal("0"))


def copy_graph(graph: ObligationGraph) -> ObligationGraph:
    # Shallow copies are enough because nested values are Decimals.
    return {u: dict(v) for u, v in graph.items()}


def graph_edges(graph: ObligationGraph) -> List[tuple[str, str, Decimal]]:
    """Edges with positive weight, in insertion order."""
    return [
        (debtor, creditor, amount)
        for debtor, edges in graph.items()
        for creditor, amount in edges.items()
        if amount > 0
    ]
