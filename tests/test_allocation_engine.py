from decimal import Decimal

import pytest

import allocation_engine
import problem_data
from allocation_engine import allocate, calculate_external_borrow_cost
from allocation_errors import MissingSupply, SearchBudgetExceeded, UnfulfillableConstraint
from allocation_validator import entries_from_allocations, unmet_requirements
from repo_models import BorrowCandidate, RepoDeal


def test_scenario_cost(scenario_deal, scenario_market) -> None:
    assert calculate_external_borrow_cost(scenario_deal, scenario_market) == Decimal(11_500)


def test_greedy_result_is_returned_directly(scenario_deal, scenario_market, monkeypatch) -> None:
    def unexpected(*args, **kwargs):
        raise AssertionError("fallback should not run")

    monkeypatch.setitem(allocation_engine.FALLBACKS, "backtracking", unexpected)
    assert allocate(scenario_deal, scenario_market).strategy == "greedy"


def test_unfulfillable_greedy_falls_back(overlap_deal, overlap_market) -> None:
    result = allocate(overlap_deal, overlap_market)
    assert result.strategy == "backtracking"
    assert result.total_cost == Decimal(12_000)


def test_milp_fallback(overlap_deal, overlap_market) -> None:
    result = allocate(overlap_deal, overlap_market, fallback="milp")
    assert result.strategy == "milp"
    assert result.total_cost == Decimal(12_000)


def test_missing_supply_skips_fallback(monkeypatch) -> None:
    calls = []
    monkeypatch.setitem(allocation_engine.FALLBACKS, "backtracking",
                        lambda *args, **kwargs: calls.append(args))
    deal = RepoDeal("R", Decimal(1_000), rating_requirements={"AA": 10})
    market = [BorrowCandidate("J", "Corporate", "BBB", Decimal("2.0"))]
    with pytest.raises(MissingSupply):
        allocate(deal, market)
    assert calls == []


def test_second_unfulfillable_is_fatal(overlap_deal) -> None:
    market = [
        BorrowCandidate("C1", "Corporate", "AAA", Decimal("1.0")),
        BorrowCandidate("M1", "Municipal", "A", Decimal("1.0")),
    ]
    with pytest.raises(UnfulfillableConstraint):
        allocate(overlap_deal, market)


def test_budget_failure_propagates(overlap_deal, overlap_market) -> None:
    with pytest.raises(SearchBudgetExceeded):
        allocate(overlap_deal, overlap_market, max_nodes=3)


def test_rating_outside_greedy_order_is_solved_by_fallback() -> None:
    deal = RepoDeal("R", Decimal(1_000), rating_requirements={"CCC": 20})
    market = [
        BorrowCandidate("J", "Corporate", "CCC", Decimal("5.0")),
        BorrowCandidate("T", "Treasury", "AAA", Decimal("1.0")),
    ]
    result = allocate(deal, market)
    assert result.strategy == "backtracking"
    assert result.total_cost == Decimal(10) + Decimal(8)


def test_unknown_fallback(scenario_deal, scenario_market) -> None:
    with pytest.raises(ValueError, match="unknown fallback"):
        allocate(scenario_deal, scenario_market, fallback="annealing")


def test_repeated_calls_are_identical(overlap_deal, overlap_market) -> None:
    first = allocate(overlap_deal, overlap_market)
    second = allocate(overlap_deal, overlap_market)
    assert first == second


def test_accepts_any_iterable(scenario_deal, scenario_market) -> None:
    assert calculate_external_borrow_cost(scenario_deal, iter(scenario_market)) == Decimal(11_500)


@pytest.mark.parametrize("deal, expected", [
    (problem_data.DEALS[0], Decimal(123_000)),
    (problem_data.DEALS[1], Decimal(72_500)),
    (problem_data.DEALS[2], Decimal(27_400)),
])
def test_sample_deals(deal, expected) -> None:
    result = allocate(deal, problem_data.BORROW_MARKET)
    assert result.total_cost == expected
    assert result.total_cost >= 0
    assert result.total_allocated == deal.total_value_required
    assert unmet_requirements(deal, entries_from_allocations(result.allocations)) == []


def test_rating_outside_greedy_order_without_supply_is_missing_supply(monkeypatch) -> None:
    calls = []
    monkeypatch.setitem(allocation_engine.FALLBACKS, "backtracking",
                        lambda *args, **kwargs: calls.append(args))
    deal = RepoDeal("R", Decimal(1_000), rating_requirements={"CCC": 20})
    market = [BorrowCandidate("T", "Treasury", "AAA", Decimal("1.0"))]
    with pytest.raises(MissingSupply) as excinfo:
        allocate(deal, market)
    assert excinfo.value.label == "CCC"
    assert excinfo.value.kind == "rating"
    assert calls == []
