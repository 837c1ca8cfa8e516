import importlib.util
import json
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _load_script():
    path = ROOT / "scripts" / "run_loop_detection.py"
    spec = importlib.util.spec_from_file_location("run_loop_detection", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_demo_network_yields_two_loops(capsys) -> None:
    script = _load_script()

    assert script.main([str(ROOT / "seeds" / "demo_network.json")]) == 0
    out = json.loads(capsys.readouterr().out)

    assert out["loops_found"] == 2
    assert out["companies_skipped"] == 0
    assert out["positions_skipped"] == 0

    first, second = out["loops"]
    assert first["participants"] == ["ANX-2847", "ABC-1247", "XYZ-4821"]
    assert Decimal(first["total_value"]) == Decimal("1800")
    assert first["debt_cost"] == 27
    assert {k: Decimal(v) for k, v in first["settlements"].items()} == {
        "ANX-2847": Decimal("-112.50"),
        "ABC-1247": Decimal("196.88"),
        "XYZ-4821": Decimal("-84.38"),
    }
    assert first["fee_covered_by"] == first["participants"]

    assert Decimal(second["total_value"]) == Decimal("600")
    assert second["debt_cost"] == 26
    assert second["fee_covered_by"] == ["QRS-3310", "LMN-5092"]
    assert second["status"] == "pending"


def test_currency_filter_and_depth(capsys) -> None:
    script = _load_script()
    fixture = str(ROOT / "seeds" / "demo_network.json")

    script.main([fixture, "--currency", "EUR"])
    assert json.loads(capsys.readouterr().out)["loops_found"] == 0

    script.main([fixture, "--max-depth", "2"])
    assert json.loads(capsys.readouterr().out)["loops_found"] == 0


def test_invalid_positions_are_counted(tmp_path, capsys) -> None:
    fixture = tmp_path / "net.json"
    fixture.write_text(
        json.dumps(
            {
                "companies": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
                "positions": [
                    {"company_id": "A", "counterparty_id": "B", "type": "debt", "amount": "5"},
                    {"company_id": "B", "counterparty_id": "C", "type": "debt", "amount": "5"},
                    {"company_id": "C", "counterparty_id": "A", "type": "debt", "amount": "5"},
                    {"company_id": "C", "counterparty_id": "A", "type": "debt", "amount": "-5"},
                ],
            }
        ),
        encoding="utf-8",
    )

    assert _load_script().main([str(fixture), "--created-by", "qa"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["positions_skipped"] == 1
    assert out["loops_found"] == 1
    assert out["loops"][0]["created_by"] == "qa"


def test_orphaned_and_duplicate_records_are_skipped(tmp_path, capsys) -> None:
    fixture = tmp_path / "net.json"
    fixture.write_text(
        json.dumps(
            {
                "companies": [{"id": "A"}, {"id": "B"}, {"id": "C"}, {"id": "A"}],
                "positions": [
                    {"company_id": "A", "counterparty_id": "B", "type": "debt", "amount": "5"},
                    {"company_id": "B", "counterparty_id": "C", "type": "debt", "amount": "5"},
                    {"company_id": "C", "counterparty_id": "A", "type": "debt", "amount": "5"},
                    {"company_id": "Q", "counterparty_id": "A", "type": "debt", "amount": "5"},
                ],
            }
        ),
        encoding="utf-8",
    )

    assert _load_script().main([str(fixture)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["companies_skipped"] == 1
    assert out["positions_skipped"] == 1
    assert out["loops_found"] == 1
