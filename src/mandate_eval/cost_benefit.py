"""Benefit-cost arithmetic layered on top of the support estimate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

_PER_100K = 100_000.0
_PER_MILLION = 1_000_000.0


def population_from_millions(population_millions: Optional[float]) -> float:
    return float(population_millions or 0.0) * _PER_MILLION


@dataclass(frozen=True)
class CostInputs:
    """Implementation cost components in one currency."""

    administration: float = 0.0
    communication: float = 0.0
    enforcement: float = 0.0
    it_systems: float = 0.0
    support_services: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.administration
            + self.communication
            + self.enforcement
            + self.it_systems
            + self.support_services
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "administration": self.administration,
            "communication": self.communication,
            "enforcement": self.enforcement,
            "it_systems": self.it_systems,
            "support_services": self.support_services,
            "total": self.total,
        }


@dataclass(frozen=True)
class CostBenefitResult:
    lives_total: float
    benefit: float
    cost: float
    net_benefit: float
    bcr: Optional[float]

    def as_dict(self) -> dict[str, Optional[float]]:
        return {
            "lives_total": self.lives_total,
            "benefit": self.benefit,
            "cost": self.cost,
            "net_benefit": self.net_benefit,
            "bcr": self.bcr,
        }


@dataclass(frozen=True)
class CostPerCapita:
    per_person: float
    per_100k: float
    per_million: float


def aggregate(
    *,
    population: Optional[float] = None,
    lives_per_100k: Optional[float] = None,
    value_per_life: Optional[float] = None,
    cost: Optional[float] = None,
) -> CostBenefitResult:
    """Lives saved, monetised benefit, net benefit and BCR.

    Absent inputs count as zero; the BCR is ``None`` unless cost is positive.
    """
    pop = float(population or 0.0)
    lives = float(lives_per_100k or 0.0)
    vsl = float(value_per_life or 0.0)
    total_cost = float(cost or 0.0)

    lives_total = lives * pop / _PER_100K
    benefit = lives_total * vsl
    bcr = benefit / total_cost if total_cost > 0 else None
    return CostBenefitResult(
        lives_total=lives_total,
        benefit=benefit,
        cost=total_cost,
        net_benefit=benefit - total_cost,
        bcr=bcr,
    )


def cost_per_capita(total_cost: float, population: Optional[float]) -> Optional[CostPerCapita]:
    pop = float(population or 0.0)
    if pop <= 0:
        return None
    per_person = float(total_cost) / pop
    return CostPerCapita(
        per_person=per_person,
        per_100k=per_person * _PER_100K,
        per_million=per_person * _PER_MILLION,
    )


@dataclass(frozen=True)
class SensitivityBounds:
    """Optional low/high bounds; a missing bound collapses to the central value."""

    lives_low: Optional[float] = None
    lives_high: Optional[float] = None
    value_per_life_low: Optional[float] = None
    value_per_life_high: Optional[float] = None
    cost_low: Optional[float] = None
    cost_high: Optional[float] = None


@dataclass(frozen=True)
class SensitivityRange:
    central: CostBenefitResult
    conservative: CostBenefitResult
    optimistic: CostBenefitResult

    @property
    def bcr_low(self) -> Optional[float]:
        return self.conservative.bcr

    @property
    def bcr_high(self) -> Optional[float]:
        return self.optimistic.bcr


def _pick(bound: Optional[float], central: Optional[float]) -> Optional[float]:
    return central if bound is None else bound


def sensitivity_range(
    *,
    population: Optional[float],
    lives_per_100k: Optional[float],
    value_per_life: Optional[float],
    cost: Optional[float],
    bounds: Optional[SensitivityBounds] = None,
) -> SensitivityRange:
    """Central, conservative and optimistic benefit-cost results.

    Conservative pairs low lives and low value per life with high cost;
    optimistic pairs the high benefit inputs with low cost.
    """
    b = bounds or SensitivityBounds()
    central = aggregate(
        population=population,
        lives_per_100k=lives_per_100k,
        value_per_life=value_per_life,
        cost=cost,
    )
    conservative = aggregate(
        population=population,
        lives_per_100k=_pick(b.lives_low, lives_per_100k),
        value_per_life=_pick(b.value_per_life_low, value_per_life),
        cost=_pick(b.cost_high, cost),
    )
    optimistic = aggregate(
        population=population,
        lives_per_100k=_pick(b.lives_high, lives_per_100k),
        value_per_life=_pick(b.value_per_life_high, value_per_life),
        cost=_pick(b.cost_low, cost),
    )
    return SensitivityRange(central=central, conservative=conservative, optimistic=optimistic)


__all__ = [
    "CostBenefitResult",
    "CostInputs",
    "CostPerCapita",
    "SensitivityBounds",
    "SensitivityRange",
    "aggregate",
    "cost_per_capita",
    "population_from_millions",
    "sensitivity_range",
]
