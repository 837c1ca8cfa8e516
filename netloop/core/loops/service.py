from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from netloop.config import Settings, settings as default_settings
from netloop.core.loops.engine import LoopDetectionEngine
from netloop.core.loops.fees import FeeSchedule, calculate_fee
from netloop.core.positions.store import PositionStore
from netloop.schemas.loop import DetectedLoop, LoopProposal, LoopStatus
from netloop.utils.exceptions import (
    BadRequestException,
    InvalidLoopException,
    PositionStoreUnavailableException,
)
from netloop.utils.metrics import DETECTION_EVENTS_TOTAL, inc
from netloop.utils.observability import detection_run

logger = logging.getLogger(__name__)


def new_loop_id() -> str:
    return f"LP-{uuid.uuid4().hex[:12].upper()}"


class LoopDetectionService:
    """Runs detection against a position store and wraps results as proposals.

    Proposals are created `pending`; acceptance is decided outside this service.
    """

    def __init__(self, store: PositionStore, *, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def _snapshot(self):
        try:
            companies = self.store.list_companies()
            positions = self.store.list_unsettled_positions()
        except OSError as exc:
            inc(DETECTION_EVENTS_TOTAL, event="snapshot", result="store_unavailable")
            raise PositionStoreUnavailableException(
                "Position store unreachable", details={"error": str(exc)}
            ) from exc
        return list(companies), list(positions)

    def run(
        self,
        created_by: str,
        *,
        max_depth: Optional[int] = None,
        currency: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[LoopProposal]:
        """Detect loops on a fresh snapshot and return one proposal per ranked loop."""
        with detection_run() as run_id:
            logger.info(
                "event=loops.run run=%s created_by=%s max_depth=%s currency=%s",
                run_id,
                created_by,
                max_depth,
                currency,
            )
            companies, positions = self._snapshot()
            engine = LoopDetectionEngine(
                companies, positions, currency=currency, settings=self.settings
            )
            loops = engine.detect_loops(max_depth)
            return [
                self.propose(loop, created_by, fee=engine.calculate_fee(loop), now=now)
                for loop in loops
            ]

    def propose(
        self,
        loop: DetectedLoop,
        created_by: str,
        *,
        fee: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> LoopProposal:
        if not created_by or not str(created_by).strip():
            raise BadRequestException("created_by is required")
        if loop.total_value <= 0 or len(set(loop.participants)) < 3:
            raise InvalidLoopException(
                details={
                    "participants": list(loop.participants),
                    "total_value": str(loop.total_value),
                }
            )

        if fee is None:
            fee = calculate_fee(loop, FeeSchedule.from_settings(self.settings))

        created_at = now or datetime.now(timezone.utc)
        return LoopProposal(
            loop_id=new_loop_id(),
            status=LoopStatus.PENDING,
            participants=list(loop.participants),
            settlements=dict(loop.settlements),
            total_value=loop.total_value,
            efficiency=loop.efficiency,
            debt_cost=fee,
            created_by=str(created_by).strip(),
            created_at=created_at,
            expires_at=created_at + timedelta(hours=self.settings.LOOP_PROPOSAL_TTL_HOURS),
        )
