from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from netloop.schemas.loop import LoopProposal, LoopStatus
from netloop.schemas.position import CompanySummary, Position, PositionRole

ZERO = Decimal("0")


def positions_for_company(company_id: str, positions: Iterable[Position]) -> List[Position]:
    """Unsettled positions recorded by `company_id` (as owner, not as counterparty)."""
    return [p for p in positions if p.company_id == company_id and not p.is_settled]


def _total(positions: Iterable[Position], role: PositionRole) -> Decimal:
    return sum((p.amount for p in positions if p.role == role), ZERO)


def net_position(company_id: str, positions: Iterable[Position]) -> Decimal:
    """Credits minus debts over the company's own unsettled positions."""
    own = positions_for_company(company_id, positions)
    return _total(own, PositionRole.CREDIT) - _total(own, PositionRole.DEBT)


def company_summary(
    company_id: str,
    positions: Iterable[Position],
    proposals: Iterable[LoopProposal],
) -> CompanySummary:
    """Headline figures for one company.

    `potential_savings` sums what the company would receive across the pending proposals
    it takes part in; payments into a loop do not reduce it.
    """
    own = positions_for_company(company_id, positions)
    total_credit = _total(own, PositionRole.CREDIT)
    total_debt = _total(own, PositionRole.DEBT)

    involved = [
        p for p in proposals
        if p.status == LoopStatus.PENDING and company_id in p.participants
    ]
    savings = sum(
        (max(p.settlements.get(company_id, ZERO), ZERO) for p in involved),
        ZERO,
    )

    return CompanySummary(
        company_id=company_id,
        total_credit=total_credit,
        total_debt=total_debt,
        net_position=total_credit - total_debt,
        potential_savings=savings,
        active_loops=len(involved),
    )
