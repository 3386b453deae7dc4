"""Mixed-logit public-support estimator.

Support for a mandate design is the population-average probability of
preferring the mandate over no mandate.  The average is taken over a panel of
simulated individuals: each draw turns the (mean, sd) coefficient table into
one individual's coefficient vector, the design vectors turn that into
mandate and opt-out utilities, and a binary logit turns the utility gap into a
choice probability.

The original study offered respondents two labelled mandates plus an opt-out.
The default :attr:`ChoiceStructure.BINARY` collapses the two mandates into a
single mandate alternative carrying the Policy-A intercept.
:attr:`ChoiceStructure.THREE_WAY` keeps both labelled mandates (Policy B as
the zero-intercept reference) and reports P(A) + P(B); it changes the output
and is only used when explicitly requested.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence, Union

import numpy as np

from .coefficients import Coefficient, CoefficientPair, CoefficientTable
from .design import MandateConfiguration, build_design_vectors
from .exceptions import err
from .rng import DrawPanel

logger = logging.getLogger(__name__)

PanelLike = Union[DrawPanel, Sequence[Mapping[str, float]]]


class ChoiceStructure(str, Enum):
    BINARY = "binary"
    THREE_WAY = "three_way"


@dataclass(frozen=True)
class SupportEstimate:
    probability: float
    draws: int
    standard_error: float
    choice_structure: ChoiceStructure = ChoiceStructure.BINARY

    @property
    def percent(self) -> float:
        return self.probability * 100.0


def _sigmoid(x: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def _as_panel(panel: PanelLike) -> DrawPanel:
    if isinstance(panel, DrawPanel):
        return panel
    return DrawPanel.from_records(panel)


def individual_coefficients(pair: CoefficientPair, panel: DrawPanel) -> np.ndarray:
    """``(N, 8)`` array of ``mean + sd * z`` for every draw ``z``."""
    return pair.mean.values + pair.sd.values * panel.draws


def utility_components(
    config: MandateConfiguration,
    table: CoefficientTable,
    panel: PanelLike,
) -> np.ndarray:
    """Per-draw ``uMandate - uOptOut``."""
    pair = table.lookup(config.country, config.severity)
    betas = individual_coefficients(pair, _as_panel(panel))
    return betas @ build_design_vectors(config).difference


def _three_way_probabilities(config: MandateConfiguration, betas: np.ndarray) -> np.ndarray:
    vectors = build_design_vectors(config)
    u_policy_a = betas @ vectors.mandate
    u_policy_b = u_policy_a - betas[:, Coefficient.ASC_POLICY_A]
    u_opt_out = betas @ vectors.opt_out
    stacked = np.stack([u_policy_a, u_policy_b, u_opt_out], axis=1)
    stacked -= stacked.max(axis=1, keepdims=True)
    weights = np.exp(stacked)
    return (weights[:, 0] + weights[:, 1]) / weights.sum(axis=1)


def choice_probabilities(
    config: MandateConfiguration,
    table: CoefficientTable,
    panel: PanelLike,
    *,
    choice_structure: ChoiceStructure = ChoiceStructure.BINARY,
) -> np.ndarray:
    """Per-draw probability of choosing a mandate."""
    pair = table.lookup(config.country, config.severity)
    draws = _as_panel(panel)
    betas = individual_coefficients(pair, draws)
    if ChoiceStructure(choice_structure) is ChoiceStructure.THREE_WAY:
        return _three_way_probabilities(config, betas)
    return _sigmoid(betas @ build_design_vectors(config).difference)


def summarise_support(
    config: MandateConfiguration,
    table: CoefficientTable,
    panel: PanelLike,
    *,
    choice_structure: ChoiceStructure = ChoiceStructure.BINARY,
) -> SupportEstimate:
    probs = choice_probabilities(config, table, panel, choice_structure=choice_structure)
    draws = int(probs.shape[0])
    probability = float(probs.sum() / draws)
    if not math.isfinite(probability):
        raise err("E_SUPPORT_NONFINITE", f"support estimate is not finite for {config.as_dict()}")
    # every draw rounded to 0 or 1 in float64; the estimate is no longer in (0, 1)
    if probability <= 0.0 or probability >= 1.0:
        raise err(
            "E_SUPPORT_SATURATED",
            f"support estimate saturated at {probability!r} for {config.as_dict()}",
        )
    spread = float(probs.std(ddof=1)) if draws > 1 else 0.0
    estimate = SupportEstimate(
        probability=probability,
        draws=draws,
        standard_error=spread / math.sqrt(draws),
        choice_structure=ChoiceStructure(choice_structure),
    )
    logger.debug(
        "support estimate: config=%s draws=%d p=%.6f se=%.6f",
        config.cache_key(),
        draws,
        estimate.probability,
        estimate.standard_error,
    )
    return estimate


def estimate_support(
    config: MandateConfiguration,
    table: CoefficientTable,
    panel: PanelLike,
) -> float:
    """Monte-Carlo averaged probability of preferring the mandate, in (0, 1)."""
    return summarise_support(config, table, panel).probability


__all__ = [
    "ChoiceStructure",
    "SupportEstimate",
    "choice_probabilities",
    "estimate_support",
    "individual_coefficients",
    "summarise_support",
    "utility_components",
]
