"""Hand-off of an agreed loop to the external settlement executor.

The executor moves value on whatever ledger the host uses. This module only
builds the plan, awaits a single execution attempt and aggregates the outcome;
it never retries or compensates partial failures.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Mapping, Protocol, runtime_checkable

from netloop.schemas.loop import DetectedLoop
from netloop.schemas.settlement import (
    ParticipantOutcome,
    SettlementInstruction,
    SettlementPlan,
    SettlementReport,
)
from netloop.utils.exceptions import BadRequestException, SettlementExecutionException
from netloop.utils.metrics import SETTLEMENT_EVENTS_TOTAL, inc

logger = logging.getLogger(__name__)


@runtime_checkable
class SettlementExecutor(Protocol):
    async def execute(self, plan: SettlementPlan) -> List[ParticipantOutcome]: ...


def build_settlement_plan(
    loop: DetectedLoop, payment_handles: Mapping[str, str]
) -> SettlementPlan:
    """One instruction per participant with a non-zero settlement.

    Payers come first, then receivers, each in loop order.
    """
    missing = [
        p
        for p in loop.participants
        if loop.settlements.get(p, Decimal("0")) != 0 and not payment_handles.get(p)
    ]
    if missing:
        raise BadRequestException(
            "Missing payment handle for loop participants",
            details={"participants": missing},
        )

    instructions = [
        SettlementInstruction(
            participant=p,
            amount=loop.settlements[p],
            payment_handle=payment_handles[p],
        )
        for p in loop.participants
        if loop.settlements.get(p, Decimal("0")) != 0
    ]
    instructions.sort(key=lambda i: 0 if i.amount < 0 else 1)
    return SettlementPlan(loop=loop, instructions=instructions)


async def execute_settlement(
    plan: SettlementPlan, executor: SettlementExecutor
) -> SettlementReport:
    """Run the plan once and report per-participant results.

    Participants with an instruction the executor did not report on count as failed.
    """
    logger.info(
        "event=settlement.execute participants=%s instructions=%s",
        len(plan.loop.participants),
        len(plan.instructions),
    )
    inc(SETTLEMENT_EVENTS_TOTAL, event="execute", result="start")

    try:
        outcomes = list(await executor.execute(plan))
    except Exception as exc:
        logger.error("event=settlement.executor_failed error=%s", str(exc))
        inc(SETTLEMENT_EVENTS_TOTAL, event="execute", result="error")
        raise SettlementExecutionException(
            details={"participants": list(plan.loop.participants), "error": str(exc)}
        ) from exc

    reported = {o.participant for o in outcomes}
    for instruction in plan.instructions:
        if instruction.participant not in reported:
            outcomes.append(
                ParticipantOutcome(
                    participant=instruction.participant,
                    success=False,
                    error="no outcome reported",
                )
            )

    failed = [o.participant for o in outcomes if not o.success]
    report = SettlementReport(
        participants=list(plan.loop.participants),
        outcomes=outcomes,
        all_succeeded=not failed,
        failed_participants=failed,
    )

    if failed:
        logger.warning("event=settlement.partial failed=%s", ",".join(failed))
        inc(SETTLEMENT_EVENTS_TOTAL, event="execute", result="partial")
    else:
        logger.info("event=settlement.completed participants=%s", len(report.participants))
        inc(SETTLEMENT_EVENTS_TOTAL, event="execute", result="success")
    return report
