"""End-to-end detection over small hand-built networks."""

from decimal import Decimal

import pytest

from netloop.core.loops import LoopDetectionEngine, build_graph, detect_loops
from netloop.schemas.position import Company


# =============================================================================
# Reference scenarios
# =============================================================================
def test_symmetric_cycle_is_cleared(symmetric_triangle, xyz_companies, make_settings) -> None:
    graph = build_graph(xyz_companies, symmetric_triangle)
    loops = detect_loops(graph, 4, settings=make_settings())

    assert len(loops) == 1
    loop = loops[0]
    assert loop.participants == ["X", "Y", "Z"]
    assert all(amount == 0 for amount in loop.settlements.values())
    assert loop.total_value == Decimal("100")
    assert loop.efficiency == Decimal("100") / Decimal("300")


def test_bottleneck_cycle_is_scaled(bottleneck_triangle, xyz_companies, make_settings) -> None:
    graph = build_graph(xyz_companies, bottleneck_triangle)
    loops = detect_loops(graph, 4, settings=make_settings())

    assert len(loops) == 1
    loop = loops[0]
    assert loop.total_value == Decimal("50")
    assert loop.efficiency == Decimal("0.2")
    assert loop.settlements["Y"] == Decimal("10.00")
    assert loop.settlements["Z"] == Decimal("-10.00")


def test_chain_without_closing_edge_yields_nothing(debt, xyz_companies, make_settings) -> None:
    graph = build_graph(xyz_companies, [debt("X", "Y", 100), debt("Y", "Z", 100)])
    assert detect_loops(graph, 4, settings=make_settings()) == []


def test_depth_bound_hides_a_triangle(symmetric_triangle, xyz_companies, make_settings) -> None:
    graph = build_graph(xyz_companies, symmetric_triangle)
    assert detect_loops(graph, 2, settings=make_settings()) == []
    assert len(detect_loops(graph, 4, settings=make_settings())) == 1


def test_empty_graph(make_settings) -> None:
    assert detect_loops({}, 4, settings=make_settings()) == []


# =============================================================================
# Properties of every returned loop
# =============================================================================
@pytest.fixture
def mixed_network(debt):
    companies = ["A", "B", "C", "D", "E", "F", "G"]
    positions = [
        debt("A", "B", 400),
        debt("B", "C", 250),
        debt("C", "A", 300),
        debt("C", "D", 120),
        debt("D", "E", 80),
        debt("E", "C", "95.55"),
        debt("F", "G", 60),
        debt("G", "F", 60),
        debt("E", "F", 10),
    ]
    return companies, positions


def test_every_loop_satisfies_its_invariants(mixed_network, make_settings) -> None:
    companies, positions = mixed_network
    graph = build_graph(companies, positions)
    cfg = make_settings(LOOP_ENFORCE_DISJOINT=False, LOOP_SKIP_VISITED_STARTS=False)
    loops = detect_loops(graph, 5, settings=cfg)

    assert loops
    for loop in loops:
        participants = loop.participants
        assert len(participants) >= 3
        assert len(set(participants)) == len(participants)
        weights = []
        for i, u in enumerate(participants):
            v = participants[(i + 1) % len(participants)]
            assert graph[u][v] > 0
            weights.append(graph[u][v])
        assert loop.total_value == min(weights)
        assert Decimal("0") < loop.efficiency <= Decimal("1")
        assert sum(loop.settlements.values()) == 0


def test_results_are_ranked_and_capped(mixed_network, make_settings) -> None:
    companies, positions = mixed_network
    graph = build_graph(companies, positions)
    cfg = make_settings(LOOP_MAX_RESULTS=1)
    loops = detect_loops(graph, 5, settings=cfg)

    assert len(loops) == 1
    assert loops[0].total_value == Decimal("250")


def test_default_results_are_disjoint(mixed_network, make_settings) -> None:
    companies, positions = mixed_network
    loops = detect_loops(build_graph(companies, positions), 5, settings=make_settings())

    seen: set = set()
    for loop in loops:
        assert seen.isdisjoint(loop.participants)
        seen.update(loop.participants)


def test_same_snapshot_same_result(mixed_network, make_settings) -> None:
    companies, positions = mixed_network
    cfg = make_settings()
    first = detect_loops(build_graph(companies, positions), 4, settings=cfg)
    second = detect_loops(build_graph(companies, positions), 4, settings=cfg)
    assert first == second


def test_detection_does_not_mutate_the_graph(mixed_network, make_settings) -> None:
    companies, positions = mixed_network
    graph = build_graph(companies, positions)
    before = {u: dict(v) for u, v in graph.items()}
    detect_loops(graph, 5, settings=make_settings())
    assert graph == before


def test_exhausted_time_budget_returns_partial_result(monkeypatch, mixed_network, make_settings) -> None:
    import netloop.core.loops.finder as finder

    # First read starts the run; every later read is past the deadline.
    ticks = iter([0.0] + [10.0] * 100)
    monkeypatch.setattr(finder.time, "perf_counter", lambda: next(ticks))
    companies, positions = mixed_network
    graph = build_graph(companies, positions)

    loops = detect_loops(graph, 5, time_budget_ms=1, settings=make_settings())
    assert loops == []


# =============================================================================
# Engine facade
# =============================================================================
def test_engine_operations(debt, credit, make_settings) -> None:
    companies = [Company(id="X"), Company(id="Y"), Company(id="Z")]
    positions = [
        debt("X", "Y", 100),
        debt("Y", "Z", 50),
        credit("X", "Z", 100),
        debt("X", "Z", 5, is_settled=True),
    ]
    engine = LoopDetectionEngine(companies, positions, settings=make_settings())

    loops = engine.detect_loops()
    assert len(loops) == 1
    assert engine.calculate_fee(loops[0]) == 25
    assert engine.validate_loop(["X", "Y", "Z"]) is True
    assert engine.validate_loop(["Z", "Y", "X"]) is False
    assert engine.skipped == {"settled": 1}

    assert [p.amount for p in engine.get_company_positions("X")] == [Decimal("100"), Decimal("100")]
    assert engine.get_company_positions("Q") == []
    assert engine.get_net_position("X") == Decimal("0")
    assert engine.get_net_position("Y") == Decimal("-50")


def test_engine_graph_is_a_copy(symmetric_triangle, xyz_companies, make_settings) -> None:
    engine = LoopDetectionEngine(xyz_companies, symmetric_triangle, settings=make_settings())
    graph = engine.graph
    graph["X"]["Y"] = Decimal("0")
    assert engine.validate_loop(["X", "Y", "Z"]) is True


def test_engine_currency_filter(debt, make_settings) -> None:
    positions = [
        debt("X", "Y", 10, currency="EUR"),
        debt("Y", "Z", 10, currency="EUR"),
        debt("Z", "X", 10, currency="USD"),
    ]
    assert LoopDetectionEngine(["X", "Y", "Z"], positions, settings=make_settings()).detect_loops() != []
    eur_only = LoopDetectionEngine(
        ["X", "Y", "Z"], positions, currency="EUR", settings=make_settings()
    )
    assert eur_only.detect_loops() == []


def test_five_participant_loop_nets_to_exactly_zero(debt, make_settings) -> None:
    companies = ["A", "B", "C", "D", "E"]
    positions = [
        debt("A", "B", 333),
        debt("B", "C", 325),
        debt("C", "D", 9),
        debt("D", "E", 264),
        debt("E", "A", 12),
    ]
    loops = detect_loops(build_graph(companies, positions), 5, settings=make_settings())

    assert len(loops) == 1
    assert sum(loops[0].settlements.values()) == 0
    assert all(v == v.quantize(Decimal("0.01")) for v in loops[0].settlements.values())
