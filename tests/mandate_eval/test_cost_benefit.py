from __future__ import annotations

import pytest

from mandate_eval import CostInputs, SensitivityBounds, aggregate, cost_per_capita, sensitivity_range
from mandate_eval.cost_benefit import population_from_millions


def test_aggregate_reference_arithmetic() -> None:
    result = aggregate(population=1_000_000, lives_per_100k=25, value_per_life=5_000_000, cost=500_000_000)
    assert result.lives_total == pytest.approx(250.0)
    assert result.benefit == pytest.approx(1_250_000_000.0)
    assert result.net_benefit == pytest.approx(750_000_000.0)
    assert result.bcr == pytest.approx(2.5)


def test_bcr_undefined_without_cost() -> None:
    result = aggregate(population=1_000_000, lives_per_100k=25, value_per_life=5_000_000)
    assert result.bcr is None
    assert result.net_benefit == result.benefit
    assert aggregate(population=1_000_000, lives_per_100k=25, value_per_life=1, cost=0).bcr is None


def test_absent_inputs_are_zero() -> None:
    result = aggregate()
    assert result.lives_total == 0.0
    assert result.benefit == 0.0
    assert result.net_benefit == 0.0
    assert result.bcr is None


def test_cost_components_total() -> None:
    costs = CostInputs(
        administration=1.0,
        communication=2.0,
        enforcement=3.0,
        it_systems=4.0,
        support_services=5.0,
    )
    assert costs.total == 15.0
    assert costs.as_dict()["total"] == 15.0
    assert CostInputs().total == 0.0


def test_population_in_millions() -> None:
    assert population_from_millions(25.7) == pytest.approx(25_700_000.0)
    assert population_from_millions(None) == 0.0


def test_cost_per_capita() -> None:
    per = cost_per_capita(500_000_000, 1_000_000)
    assert per is not None
    assert per.per_person == pytest.approx(500.0)
    assert per.per_100k == pytest.approx(50_000_000.0)
    assert per.per_million == pytest.approx(500_000_000.0)
    assert cost_per_capita(100.0, 0) is None


def test_sensitivity_pairs_low_benefit_with_high_cost() -> None:
    spread = sensitivity_range(
        population=1_000_000,
        lives_per_100k=25,
        value_per_life=5_000_000,
        cost=500_000_000,
        bounds=SensitivityBounds(
            lives_low=20,
            lives_high=30,
            value_per_life_low=4_000_000,
            value_per_life_high=6_000_000,
            cost_low=400_000_000,
            cost_high=600_000_000,
        ),
    )
    assert spread.central.bcr == pytest.approx(2.5)
    assert spread.bcr_low == pytest.approx(800_000_000 / 600_000_000)
    assert spread.bcr_high == pytest.approx(4.5)
    assert spread.conservative.net_benefit == pytest.approx(200_000_000.0)
    assert spread.optimistic.net_benefit == pytest.approx(1_400_000_000.0)


def test_missing_bounds_give_zero_width_interval() -> None:
    spread = sensitivity_range(
        population=1_000_000,
        lives_per_100k=25,
        value_per_life=5_000_000,
        cost=500_000_000,
    )
    assert spread.bcr_low == spread.bcr_high == spread.central.bcr


def test_partial_bounds_fall_back_to_central() -> None:
    spread = sensitivity_range(
        population=1_000_000,
        lives_per_100k=25,
        value_per_life=5_000_000,
        cost=500_000_000,
        bounds=SensitivityBounds(cost_high=1_000_000_000),
    )
    assert spread.bcr_low == pytest.approx(1.25)
    assert spread.bcr_high == pytest.approx(2.5)
