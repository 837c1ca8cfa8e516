from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from netloop.schemas.loop import DetectedLoop


class SettlementInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    participant: str
    amount: Decimal  # negative = pays in, positive = receives
    payment_handle: str


class SettlementPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    loop: DetectedLoop
    instructions: List[SettlementInstruction]


class ParticipantOutcome(BaseModel):
    participant: str
    success: bool
    error: Optional[str] = None


class SettlementReport(BaseModel):
    participants: List[str]
    outcomes: List[ParticipantOutcome]
    all_succeeded: bool
    failed_participants: List[str]
