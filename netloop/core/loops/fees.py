from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from netloop.config import Settings, settings as default_settings
from netloop.schemas.loop import DetectedLoop
from netloop.schemas.position import Company


@dataclass(frozen=True)
class FeeSchedule:
    """Utility-token pricing for executing a loop settlement."""

    base_fee: int = 10
    per_participant_rate: int = 5
    value_divisor: int = 1000
    value_cap: int = 10

    def __post_init__(self) -> None:
        if self.value_divisor <= 0:
            raise ValueError("value_divisor must be positive")
        if min(self.base_fee, self.per_participant_rate, self.value_cap) < 0:
            raise ValueError("fee components must be non-negative")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FeeSchedule":
        cfg = settings or default_settings
        return cls(
            base_fee=cfg.FEE_BASE,
            per_participant_rate=cfg.FEE_PER_PARTICIPANT,
            value_divisor=cfg.FEE_VALUE_DIVISOR,
            value_cap=cfg.FEE_VALUE_CAP,
        )


def calculate_fee(loop: DetectedLoop, schedule: Optional[FeeSchedule] = None) -> int:
    """Fee in token units: base + per-participant charge + value component (capped).

    Rounds half up so a quoted fee and a later charge always agree.
    """
    schedule = schedule or FeeSchedule.from_settings()
    value_component = min(
        loop.total_value / Decimal(schedule.value_divisor),
        Decimal(schedule.value_cap),
    )
    fee = (
        Decimal(schedule.base_fee)
        + Decimal(len(loop.participants) * schedule.per_participant_rate)
        + value_component
    )
    return int(fee.to_integral_value(rounding=ROUND_HALF_UP))


def can_afford_fee(company: Company, fee: int) -> bool:
    return company.token_balance >= fee
