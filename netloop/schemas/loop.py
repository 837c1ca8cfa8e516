from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict


class LoopStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    COMPLETED = "completed"
    REJECTED = "rejected"


class DetectedLoop(BaseModel):
    """A closed cycle of obligations and the settlement that nets it.

    Negative settlement: the company pays in. Positive: the company receives.
    """

    model_config = ConfigDict(frozen=True)

    participants: List[str]
    settlements: Dict[str, Decimal]
    total_value: Decimal
    efficiency: Decimal


class LoopProposal(BaseModel):
    model_config = ConfigDict(frozen=True)

    loop_id: str
    status: LoopStatus = LoopStatus.PENDING
    participants: List[str]
    settlements: Dict[str, Decimal]
    total_value: Decimal
    efficiency: Decimal
    debt_cost: int
    created_by: str
    created_at: datetime
    expires_at: datetime

    def to_loop(self) -> DetectedLoop:
        return DetectedLoop(
            participants=list(self.participants),
            settlements=dict(self.settlements),
            total_value=self.total_value,
            efficiency=self.efficiency,
        )
