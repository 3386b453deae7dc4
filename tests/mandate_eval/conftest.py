from __future__ import annotations

import pytest

from mandate_eval import CoefficientTable, DrawPanel, load_coefficient_table, panel_from_seed

REFERENCE_SEED = 123456789


@pytest.fixture(scope="session")
def table() -> CoefficientTable:
    return load_coefficient_table()


@pytest.fixture(scope="session")
def panel() -> DrawPanel:
    return panel_from_seed(REFERENCE_SEED, 1000)
