from __future__ import annotations

import itertools
import logging
import threading
from typing import Dict, Iterable, List, Optional, Protocol, Union, runtime_checkable

from netloop.schemas.position import Company, Position
from netloop.utils.exceptions import BadRequestException, NotFoundException

logger = logging.getLogger(__name__)

PositionId = Union[int, str]


@runtime_checkable
class PositionStore(Protocol):
    """Record store consumed at the start of a detection run.

    Implementations backed by I/O raise PositionStoreUnavailableException when
    the store cannot be reached.
    """

    def list_companies(self) -> List[Company]: ...

    def list_unsettled_positions(self) -> List[Position]: ...

    def get_company(self, company_id: str) -> Company: ...

    def mark_settled(self, position_ids: Iterable[PositionId]) -> int: ...


class InMemoryPositionStore:
    """Thread-safe in-memory store; reads return copies taken under one lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._companies: Dict[str, Company] = {}
        self._positions: Dict[PositionId, Position] = {}
        self._ids = itertools.count(1)

    def add_company(self, company: Company) -> Company:
        with self._lock:
            if company.id in self._companies:
                raise BadRequestException(
                    "Company already exists", details={"company_id": company.id}
                )
            self._companies[company.id] = company
            return company

    def add_position(self, position: Position) -> Position:
        with self._lock:
            if position.company_id not in self._companies:
                raise NotFoundException(
                    "Owning company not found", details={"company_id": position.company_id}
                )
            if position.id is None:
                position = position.model_copy(update={"id": next(self._ids)})
            elif position.id in self._positions:
                raise BadRequestException(
                    "Position already exists", details={"position_id": position.id}
                )
            self._positions[position.id] = position
            return position

    def get_company(self, company_id: str) -> Company:
        with self._lock:
            company = self._companies.get(company_id)
        if company is None:
            raise NotFoundException(details={"company_id": company_id})
        return company

    def get_position(self, position_id: PositionId) -> Optional[Position]:
        with self._lock:
            return self._positions.get(position_id)

    def list_companies(self) -> List[Company]:
        with self._lock:
            return list(self._companies.values())

    def list_unsettled_positions(self) -> List[Position]:
        with self._lock:
            return [p for p in self._positions.values() if not p.is_settled]

    def mark_settled(self, position_ids: Iterable[PositionId]) -> int:
        """Flag positions as settled; unknown or already settled ids are ignored."""
        updated = 0
        with self._lock:
            for position_id in position_ids:
                position = self._positions.get(position_id)
                if position is None or position.is_settled:
                    continue
                self._positions[position_id] = position.model_copy(update={"is_settled": True})
                updated += 1
        logger.info("event=store.mark_settled updated=%s", updated)
        return updated
