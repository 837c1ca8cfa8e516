from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _default_token_balance() -> int:
    from netloop.config import settings

    return int(settings.DEFAULT_TOKEN_BALANCE)


class PositionRole(str, Enum):
    CREDIT = "credit"  # owning company is owed
    DEBT = "debt"  # owning company owes


class Position(BaseModel):
    """Bilateral obligation recorded by `company_id` against `counterparty_id`.

    `role` is accepted under its storage name `type` as well.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[Union[int, str]] = None
    company_id: str = Field(..., min_length=1)
    counterparty_id: str = Field(..., min_length=1)
    role: PositionRole = Field(..., alias="type")
    amount: Decimal = Field(..., ge=0)
    currency: str = Field(default="USD", min_length=1, max_length=16)
    is_settled: bool = False
    due_date: Optional[datetime] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _reject_self_obligation(self) -> "Position":
        if self.company_id == self.counterparty_id:
            raise ValueError("company_id and counterparty_id must differ")
        return self

    @property
    def debtor_id(self) -> str:
        return self.company_id if self.role == PositionRole.DEBT else self.counterparty_id

    @property
    def creditor_id(self) -> str:
        return self.counterparty_id if self.role == PositionRole.DEBT else self.company_id


class Company(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    token_balance: int = Field(default_factory=_default_token_balance, ge=0)


class CompanySummary(BaseModel):
    company_id: str
    total_credit: Decimal
    total_debt: Decimal
    net_position: Decimal
    potential_savings: Decimal
    active_loops: int
