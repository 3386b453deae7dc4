"""Support estimator properties and the pinned reference scenario."""

from __future__ import annotations

import itertools
import math

import numpy as np
import pytest

from mandate_eval import (
    ChoiceStructure,
    Coefficient,
    CoefficientTable,
    DrawPanel,
    MandateConfiguration,
    estimate_support,
    panel_from_seed,
    summarise_support,
    utility_components,
)
from mandate_eval.estimator import choice_probabilities, individual_coefficients
from mandate_eval.exceptions import InvalidPanelError, MandateEvalError, MissingParametersError

REFERENCE_SEED = 123456789


def _reference_config(**overrides) -> MandateConfiguration:
    values = dict(
        country="AU",
        severity="mild",
        scope="highrisk",
        exemptions="medical",
        coverage=0.5,
        lives_per_100k=25.0,
    )
    values.update(overrides)
    return MandateConfiguration.from_values(**values)


def test_reference_scenario_matches_fixture(table: CoefficientTable, panel: DrawPanel) -> None:
    support = estimate_support(_reference_config(), table, panel)
    assert math.isclose(support, 0.8938169157129032, rel_tol=1e-12)


def test_loop_and_vectorised_paths_agree(table: CoefficientTable, panel: DrawPanel) -> None:
    config = _reference_config(scope="all", exemptions="medrelpers", coverage=0.9, lives_per_100k=5)
    pair = table.lookup("AU", "mild")
    total = 0.0
    for record in panel.records():
        beta = {name.key: pair.mean[name] + pair.sd[name] * record[name.key] for name in Coefficient}
        u_mandate = (
            beta["ascPolicyA"] + beta["scopeAll"] + beta["exMedRelPers"] + beta["cov90"] + beta["lives"] * 5
        )
        total += 1.0 / (1.0 + math.exp(-(u_mandate - beta["ascOptOut"])))
    assert estimate_support(config, table, panel) == pytest.approx(total / panel.size, rel=1e-12)
    assert estimate_support(config, table, panel) == pytest.approx(0.658415638923907, rel=1e-12)


def test_saturated_support_rejected(table: CoefficientTable, panel: DrawPanel) -> None:
    with pytest.raises(MandateEvalError) as excinfo:
        estimate_support(_reference_config(lives_per_100k=5000.0), table, panel)
    assert excinfo.value.code == "E_SUPPORT_SATURATED"


def test_estimate_is_pure(table: CoefficientTable, panel: DrawPanel) -> None:
    config = _reference_config()
    assert estimate_support(config, table, panel) == estimate_support(config, table, panel)


def test_output_strictly_bounded(table: CoefficientTable, panel: DrawPanel) -> None:
    grid = itertools.product(
        [key for key in table],
        ["highrisk", "all"],
        ["medical", "medrel", "medrelpers"],
        [0.5, 0.7, 0.9],
        [0.0, 25.0, 100.0],
    )
    for (country, severity), scope, exemptions, coverage, lives in grid:
        config = MandateConfiguration.from_values(
            country=country,
            severity=severity,
            scope=scope,
            exemptions=exemptions,
            coverage=coverage,
            lives_per_100k=lives,
        )
        support = estimate_support(config, table, panel)
        assert 0.0 < support < 1.0


def test_single_draw_panel_bounded(table: CoefficientTable, panel: DrawPanel) -> None:
    support = estimate_support(_reference_config(), table, panel.head(1))
    assert 0.0 < support < 1.0


def test_reference_levels_are_inert(table: CoefficientTable, panel: DrawPanel) -> None:
    config = _reference_config(lives_per_100k=0.0)
    betas = individual_coefficients(table.lookup("AU", "mild"), panel)
    expected = betas[:, Coefficient.ASC_POLICY_A] - betas[:, Coefficient.ASC_OPT_OUT]
    np.testing.assert_allclose(utility_components(config, table, panel), expected, rtol=1e-14, atol=1e-15)

    with_lives = estimate_support(_reference_config(lives_per_100k=25.0), table, panel)
    assert estimate_support(config, table, panel) == pytest.approx(0.6792056359737431, rel=1e-12)
    assert with_lives != estimate_support(config, table, panel)


def test_monotone_in_lives_saved(table: CoefficientTable, panel: DrawPanel) -> None:
    betas = individual_coefficients(table.lookup("AU", "mild"), panel)
    assert (betas[:, Coefficient.LIVES] >= 0).all()
    low = estimate_support(_reference_config(lives_per_100k=10.0), table, panel)
    high = estimate_support(_reference_config(lives_per_100k=50.0), table, panel)
    assert low <= high
    assert low == pytest.approx(0.7849324789132964, rel=1e-12)
    assert high == pytest.approx(0.9716492922677216, rel=1e-12)


def test_estimate_converges_with_panel_size(table: CoefficientTable) -> None:
    config = _reference_config()
    large = panel_from_seed(REFERENCE_SEED, 5000)
    e100 = estimate_support(config, table, large.head(100))
    e1000 = estimate_support(config, table, large.head(1000))
    e5000 = estimate_support(config, table, large)
    assert abs(e5000 - e1000) < abs(e1000 - e100)


def test_unknown_country_propagates(table: CoefficientTable, panel: DrawPanel) -> None:
    with pytest.raises(MissingParametersError):
        estimate_support(_reference_config(country="DE"), table, panel)


def test_invalid_panels_rejected(table: CoefficientTable, panel: DrawPanel) -> None:
    with pytest.raises(InvalidPanelError):
        estimate_support(_reference_config(), table, [])
    records = panel.head(3).records()
    del records[2]["lives"]
    with pytest.raises(InvalidPanelError):
        estimate_support(_reference_config(), table, records)


def test_record_panels_accepted(table: CoefficientTable, panel: DrawPanel) -> None:
    records = panel.head(50).records()
    assert estimate_support(_reference_config(), table, records) == pytest.approx(
        estimate_support(_reference_config(), table, panel.head(50)), rel=1e-15
    )


def test_extreme_utility_does_not_overflow(panel: DrawPanel) -> None:
    mean = {name.key: 0.0 for name in Coefficient}
    mean["ascOptOut"] = 800.0
    table = CoefficientTable.from_mapping({"coefficients": {"XX": {"mild": {"mean": mean}}}})
    config = MandateConfiguration(country="XX", severity="mild")
    with np.errstate(all="raise"):
        probs = choice_probabilities(config, table, panel.head(10))
    assert np.isfinite(probs).all()


def test_summary_reports_standard_error(table: CoefficientTable, panel: DrawPanel) -> None:
    summary = summarise_support(_reference_config(), table, panel)
    assert summary.draws == 1000
    assert 0.0 < summary.standard_error < 0.01
    assert summary.percent == pytest.approx(summary.probability * 100.0)
    assert summary.choice_structure is ChoiceStructure.BINARY


def test_three_way_structure_only_on_request(table: CoefficientTable, panel: DrawPanel) -> None:
    binary = summarise_support(_reference_config(), table, panel)
    three_way = summarise_support(
        _reference_config(), table, panel, choice_structure=ChoiceStructure.THREE_WAY
    )
    assert three_way.choice_structure is ChoiceStructure.THREE_WAY
    assert three_way.probability == pytest.approx(0.9383387274568185, rel=1e-12)
    assert three_way.probability > binary.probability
