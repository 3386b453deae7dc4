"""Mixed-logit public-support simulator and benefit-cost readout for mandates."""

from .coefficients import (
    COEFFICIENT_ORDER,
    Coefficient,
    CoefficientPair,
    CoefficientTable,
    CoefficientVector,
    load_coefficient_table,
)
from .config import RNGConfig, SimulationConfig, ValuationConfig, load_simulation_config
from .cost_benefit import (
    CostBenefitResult,
    CostInputs,
    SensitivityBounds,
    SensitivityRange,
    aggregate,
    cost_per_capita,
    sensitivity_range,
)
from .design import Coverage, Exemptions, MandateConfiguration, Scope, build_design_vectors
from .estimator import (
    ChoiceStructure,
    SupportEstimate,
    estimate_support,
    summarise_support,
    utility_components,
)
from .exceptions import InvalidPanelError, MandateEvalError, MissingParametersError
from .readout import MandateEvaluation, evaluate_mandate, lives_equivalents
from .rng import DrawPanel, Mulberry32, NormalSampler, build_panel, panel_from_seed
from .scenarios import (
    ScenarioRecord,
    load_scenarios,
    materialise_scenarios,
    replay_support,
    validate_scenario_run,
)
from .session import SupportSession

__all__ = [
    "COEFFICIENT_ORDER",
    "Coefficient",
    "CoefficientPair",
    "CoefficientTable",
    "CoefficientVector",
    "load_coefficient_table",
    "RNGConfig",
    "SimulationConfig",
    "ValuationConfig",
    "load_simulation_config",
    "CostBenefitResult",
    "CostInputs",
    "SensitivityBounds",
    "SensitivityRange",
    "aggregate",
    "cost_per_capita",
    "sensitivity_range",
    "Coverage",
    "Exemptions",
    "MandateConfiguration",
    "Scope",
    "build_design_vectors",
    "ChoiceStructure",
    "SupportEstimate",
    "estimate_support",
    "summarise_support",
    "utility_components",
    "InvalidPanelError",
    "MandateEvalError",
    "MissingParametersError",
    "MandateEvaluation",
    "evaluate_mandate",
    "lives_equivalents",
    "DrawPanel",
    "Mulberry32",
    "NormalSampler",
    "build_panel",
    "panel_from_seed",
    "ScenarioRecord",
    "load_scenarios",
    "materialise_scenarios",
    "replay_support",
    "validate_scenario_run",
    "SupportSession",
]
