"""Support/BCR classifications and the combined mandate evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .coefficients import Coefficient, CoefficientTable
from .cost_benefit import (
    CostBenefitResult,
    CostInputs,
    CostPerCapita,
    SensitivityBounds,
    SensitivityRange,
    cost_per_capita,
    sensitivity_range,
)
from .design import Coverage, Exemptions, MandateConfiguration, Scope
from .estimator import ChoiceStructure, SupportEstimate
from .session import SupportSession

HIGH_SUPPORT_PCT = 70.0
MEDIUM_SUPPORT_PCT = 50.0
FAVOURABLE_BCR = 1.0
BORDERLINE_BCR = 0.8


class SupportBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNAVAILABLE = "unavailable"


class BCRBand(str, Enum):
    FAVOURABLE = "favourable"
    BORDERLINE = "borderline"
    WEAK = "weak"
    UNDEFINED = "undefined"


class DataCompleteness(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"


class Recommendation(str, Enum):
    STRONG_CANDIDATE = "strong_candidate"
    COST_EFFECTIVE_MODERATE_SUPPORT = "cost_effective_moderate_support"
    SUPPORTED_NOT_COST_EFFECTIVE = "supported_not_cost_effective"
    REFERENCE_ONLY = "reference_only"
    UNAVAILABLE = "unavailable"


def support_band(support: Optional[float]) -> SupportBand:
    if support is None:
        return SupportBand.UNAVAILABLE
    pct = support * 100.0
    if pct >= HIGH_SUPPORT_PCT:
        return SupportBand.HIGH
    if pct >= MEDIUM_SUPPORT_PCT:
        return SupportBand.MEDIUM
    return SupportBand.LOW


def bcr_band(bcr: Optional[float]) -> BCRBand:
    if bcr is None:
        return BCRBand.UNDEFINED
    if bcr >= FAVOURABLE_BCR:
        return BCRBand.FAVOURABLE
    if bcr >= BORDERLINE_BCR:
        return BCRBand.BORDERLINE
    return BCRBand.WEAK


def data_completeness(total_cost: Optional[float], value_per_life: Optional[float]) -> DataCompleteness:
    has_cost = bool(total_cost) and float(total_cost) > 0  # type: ignore[arg-type]
    has_vsl = bool(value_per_life) and float(value_per_life) > 0  # type: ignore[arg-type]
    if has_cost and has_vsl:
        return DataCompleteness.COMPLETE
    if has_cost or has_vsl:
        return DataCompleteness.PARTIAL
    return DataCompleteness.MISSING


def recommend(support: Optional[float], bcr: Optional[float]) -> Recommendation:
    if support is None or bcr is None:
        return Recommendation.UNAVAILABLE
    cost_effective = bcr >= FAVOURABLE_BCR
    well_supported = support * 100.0 >= HIGH_SUPPORT_PCT
    if cost_effective and well_supported:
        return Recommendation.STRONG_CANDIDATE
    if cost_effective:
        return Recommendation.COST_EFFECTIVE_MODERATE_SUPPORT
    if well_supported:
        return Recommendation.SUPPORTED_NOT_COST_EFFECTIVE
    return Recommendation.REFERENCE_ONLY


@dataclass(frozen=True)
class LivesEquivalent:
    """Lives saved per 100k that offset one attribute change in utility.

    Positive values mean the change lowers utility.
    """

    attribute: Coefficient
    label: str
    value: float


_EQUIVALENT_LABELS = {
    Coefficient.SCOPE_ALL: "Scope: high-risk occupations -> all occupations and public spaces",
    Coefficient.EX_MED_REL: "Exemptions: medical only -> medical + religious",
    Coefficient.EX_MED_REL_PERS: "Exemptions: medical only -> medical + religious + personal belief",
    Coefficient.COV70: "Coverage threshold: 50% -> 70% population vaccinated",
    Coefficient.COV90: "Coverage threshold: 50% -> 90% population vaccinated",
}


def lives_equivalents(config: MandateConfiguration, table: CoefficientTable) -> list[LivesEquivalent]:
    """Marginal rates of substitution against lives saved, from mean coefficients."""
    mean = table.lookup(config.country, config.severity).mean
    lives = mean[Coefficient.LIVES]
    if lives == 0.0:
        return []
    attributes: list[Coefficient] = []
    if config.scope is Scope.ALL:
        attributes.append(Coefficient.SCOPE_ALL)
    if config.exemptions is Exemptions.MEDICAL_RELIGIOUS:
        attributes.append(Coefficient.EX_MED_REL)
    elif config.exemptions is Exemptions.MEDICAL_RELIGIOUS_PERSONAL:
        attributes.append(Coefficient.EX_MED_REL_PERS)
    if config.coverage is Coverage.PCT70:
        attributes.append(Coefficient.COV70)
    elif config.coverage is Coverage.PCT90:
        attributes.append(Coefficient.COV90)
    return [
        LivesEquivalent(
            attribute=name,
            label=_EQUIVALENT_LABELS[name],
            value=-mean[name] / lives,
        )
        for name in attributes
    ]


@dataclass(frozen=True)
class MandateEvaluation:
    config: MandateConfiguration
    population: float
    costs: CostInputs
    value_per_life: float
    support: SupportEstimate
    cost_benefit: CostBenefitResult
    sensitivity: SensitivityRange
    per_capita: Optional[CostPerCapita]
    equivalents: list[LivesEquivalent]
    coefficients: CoefficientTable

    @property
    def support_probability(self) -> float:
        return self.support.probability

    @property
    def support_band(self) -> SupportBand:
        return support_band(self.support_probability)

    @property
    def bcr_band(self) -> BCRBand:
        return bcr_band(self.cost_benefit.bcr)

    @property
    def completeness(self) -> DataCompleteness:
        return data_completeness(self.costs.total, self.value_per_life)

    @property
    def recommendation(self) -> Recommendation:
        return recommend(self.support_probability, self.cost_benefit.bcr)

    def as_dict(self) -> dict[str, object]:
        support = {
            "probability": self.support.probability,
            "percent": self.support.percent,
            "standard_error": self.support.standard_error,
            "draws": self.support.draws,
            "choice_structure": self.support.choice_structure.value,
        }
        per_capita = None
        if self.per_capita is not None:
            per_capita = {
                "per_person": self.per_capita.per_person,
                "per_100k": self.per_capita.per_100k,
                "per_million": self.per_capita.per_million,
            }
        return {
            "config": self.config.as_dict(),
            "population": self.population,
            "value_per_life": self.value_per_life,
            "costs": self.costs.as_dict(),
            "support": support,
            "cost_benefit": self.cost_benefit.as_dict(),
            "sensitivity": {
                "bcr_low": self.sensitivity.bcr_low,
                "bcr_high": self.sensitivity.bcr_high,
                "net_benefit_low": self.sensitivity.conservative.net_benefit,
                "net_benefit_high": self.sensitivity.optimistic.net_benefit,
            },
            "cost_per_capita": per_capita,
            "lives_equivalents": [
                {"attribute": item.attribute.key, "label": item.label, "value": item.value}
                for item in self.equivalents
            ],
            "bands": {
                "support": self.support_band.value,
                "bcr": self.bcr_band.value,
                "data": self.completeness.value,
            },
            "recommendation": self.recommendation.value,
            "coefficients": {
                "semver": self.coefficients.semver,
                "version": self.coefficients.version,
                "digest": self.coefficients.digest,
            },
        }


def evaluate_mandate(
    session: SupportSession,
    config: MandateConfiguration,
    *,
    population: float = 0.0,
    costs: Optional[CostInputs] = None,
    value_per_life: float = 0.0,
    bounds: Optional[SensitivityBounds] = None,
    choice_structure: ChoiceStructure = ChoiceStructure.BINARY,
) -> MandateEvaluation:
    """Support estimate plus benefit-cost readout for one configuration.

    Estimator failures propagate unchanged.
    """
    costs = costs or CostInputs()
    support = session.estimate(config, choice_structure=choice_structure)
    equivalents = lives_equivalents(config, session.table)

    spread = sensitivity_range(
        population=population,
        lives_per_100k=config.lives_per_100k,
        value_per_life=value_per_life,
        cost=costs.total,
        bounds=bounds,
    )
    return MandateEvaluation(
        config=config,
        population=float(population),
        costs=costs,
        value_per_life=float(value_per_life),
        support=support,
        cost_benefit=spread.central,
        sensitivity=spread,
        per_capita=cost_per_capita(costs.total, population),
        equivalents=equivalents,
        coefficients=session.table,
    )


__all__ = [
    "BCRBand",
    "DataCompleteness",
    "LivesEquivalent",
    "MandateEvaluation",
    "Recommendation",
    "SupportBand",
    "bcr_band",
    "data_completeness",
    "evaluate_mandate",
    "lives_equivalents",
    "recommend",
    "support_band",
]
