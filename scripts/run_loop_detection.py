"""Run loop detection over a JSON fixture and print the resulting proposals.

Fixture format: {"companies": [{"id": ...}, ...], "positions": [{...}, ...]}
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from netloop.config import settings
from netloop.core.loops.fees import can_afford_fee
from netloop.core.loops.service import LoopDetectionService
from netloop.core.positions.store import InMemoryPositionStore
from netloop.schemas.position import Company, Position
from netloop.utils.exceptions import NetloopException

logger = logging.getLogger("run_loop_detection")


def _load_store(data: dict[str, Any]) -> tuple[InMemoryPositionStore, int, int]:
    """Load a fixture; invalid, duplicate or orphaned records are skipped and counted."""
    store = InMemoryPositionStore()

    companies_skipped = 0
    for index, raw in enumerate(data.get("companies", [])):
        try:
            store.add_company(Company.model_validate(raw))
        except ValidationError as exc:
            companies_skipped += 1
            logger.warning("event=fixture.company_skipped index=%s errors=%s", index, exc.error_count())
        except NetloopException as exc:
            companies_skipped += 1
            logger.warning("event=fixture.company_skipped index=%s code=%s", index, exc.code)

    positions_skipped = 0
    for index, raw in enumerate(data.get("positions", [])):
        try:
            store.add_position(Position.model_validate(raw))
        except ValidationError as exc:
            positions_skipped += 1
            logger.warning("event=fixture.position_skipped index=%s errors=%s", index, exc.error_count())
        except NetloopException as exc:
            positions_skipped += 1
            logger.warning("event=fixture.position_skipped index=%s code=%s", index, exc.code)
    return store, companies_skipped, positions_skipped


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("fixture", type=Path, help="Path to a companies/positions JSON file")
    parser.add_argument("--max-depth", type=int, default=None)
    parser.add_argument("--currency", default=None)
    parser.add_argument("--created-by", default="loop-bot")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(name)s %(message)s")

    data = json.loads(args.fixture.read_text(encoding="utf-8"))
    store, companies_skipped, positions_skipped = _load_store(data)

    service = LoopDetectionService(store)
    proposals = service.run(args.created_by, max_depth=args.max_depth, currency=args.currency)

    companies = {c.id: c for c in store.list_companies()}
    out = []
    for proposal in proposals:
        item = proposal.model_dump(mode="json")
        item["fee_covered_by"] = [
            pid
            for pid in proposal.participants
            if pid in companies and can_afford_fee(companies[pid], proposal.debt_cost)
        ]
        out.append(item)

    json.dump(
        {
            "loops_found": len(out),
            "companies_skipped": companies_skipped,
            "positions_skipped": positions_skipped,
            "loops": out,
        },
        sys.stdout,
        indent=2,
    )
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
