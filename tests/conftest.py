"""
netloop: pytest fixtures and configuration.

Provides:
- Position factories for debt/credit records
- Canonical small networks used across the loop detection tests
- Isolated Settings instances
"""
from decimal import Decimal
from typing import Callable

import pytest

from netloop.config import Settings
from netloop.schemas.position import Position, PositionRole


# =============================================================================
# Position factories
# =============================================================================
def _position(company_id: str, counterparty_id: str, amount, role: PositionRole, **extra) -> Position:
    return Position(
        company_id=company_id,
        counterparty_id=counterparty_id,
        role=role,
        amount=Decimal(str(amount)),
        **extra,
    )


@pytest.fixture
def debt() -> Callable[..., Position]:
    """`debt("A", "B", 100)`: A owes B 100."""

    def make(company_id: str, counterparty_id: str, amount, **extra) -> Position:
        return _position(company_id, counterparty_id, amount, PositionRole.DEBT, **extra)

    return make


@pytest.fixture
def credit() -> Callable[..., Position]:
    """`credit("A", "B", 100)`: B owes A 100, recorded by A."""

    def make(company_id: str, counterparty_id: str, amount, **extra) -> Position:
        return _position(company_id, counterparty_id, amount, PositionRole.CREDIT, **extra)

    return make


# =============================================================================
# Networks
# =============================================================================
@pytest.fixture
def xyz_companies() -> list[str]:
    return ["X", "Y", "Z"]


@pytest.fixture
def symmetric_triangle(debt) -> list[Position]:
    """X owes Y 100, Y owes Z 100, Z owes X 100."""
    return [debt("X", "Y", 100), debt("Y", "Z", 100), debt("Z", "X", 100)]


@pytest.fixture
def bottleneck_triangle(debt) -> list[Position]:
    """X owes Y 100, Y owes Z 50, Z owes X 100."""
    return [debt("X", "Y", 100), debt("Y", "Z", 50), debt("Z", "X", 100)]


# =============================================================================
# Settings
# =============================================================================
@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def make(**overrides) -> Settings:
        return Settings(ENV="test", **overrides)

    return make
