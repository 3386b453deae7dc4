"""Mandate configurations and their attribute design vectors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Tuple

import numpy as np

from .coefficients import COEFFICIENT_COUNT, Coefficient
from .exceptions import err

_COVERAGE_TOLERANCE = 1e-6


class Scope(str, Enum):
    HIGH_RISK = "highrisk"
    ALL = "all"


class Exemptions(str, Enum):
    MEDICAL = "medical"
    MEDICAL_RELIGIOUS = "medrel"
    MEDICAL_RELIGIOUS_PERSONAL = "medrelpers"


class Coverage(float, Enum):
    """Vaccination coverage at which the mandate is lifted."""

    PCT50 = 0.5
    PCT70 = 0.7
    PCT90 = 0.9

    @classmethod
    def from_value(cls, value: float) -> "Coverage":
        try:
            numeric = float(value)
        except (TypeError, ValueError) as exc:
            raise err("E_CONFIG_VALUE", f"coverage must be a number, got {value!r}") from exc
        for level in cls:
            if abs(numeric - level.value) < _COVERAGE_TOLERANCE:
                return level
        raise err("E_CONFIG_VALUE", f"coverage must be one of 0.5, 0.7, 0.9, got {value!r}")


def _coerce(enum_type, value: object, label: str):
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(repr(level.value) for level in enum_type)
        raise err("E_CONFIG_VALUE", f"{label} must be one of {allowed}, got {value!r}") from None


@dataclass(frozen=True)
class MandateConfiguration:
    country: str
    severity: str
    scope: Scope = Scope.HIGH_RISK
    exemptions: Exemptions = Exemptions.MEDICAL
    coverage: Coverage = Coverage.PCT50
    lives_per_100k: float = 0.0

    def __post_init__(self) -> None:
        # accept plain strings/floats for the categorical levels
        if not isinstance(self.scope, Scope):
            object.__setattr__(self, "scope", _coerce(Scope, self.scope, "scope"))
        if not isinstance(self.exemptions, Exemptions):
            object.__setattr__(
                self, "exemptions", _coerce(Exemptions, self.exemptions, "exemptions")
            )
        if not isinstance(self.coverage, Coverage):
            object.__setattr__(self, "coverage", Coverage.from_value(self.coverage))

    def cache_key(self) -> Tuple[str, str, str, str, float, float]:
        return (
            self.country,
            self.severity,
            self.scope.value,
            self.exemptions.value,
            self.coverage.value,
            float(self.lives_per_100k),
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "country": self.country,
            "severity": self.severity,
            "scope": self.scope.value,
            "exemptions": self.exemptions.value,
            "coverage": self.coverage.value,
            "lives_per_100k": float(self.lives_per_100k),
        }

    @staticmethod
    def from_values(
        *,
        country: str,
        severity: str,
        scope: str = "highrisk",
        exemptions: str = "medical",
        coverage: float = 0.5,
        lives_per_100k: float = 0.0,
    ) -> "MandateConfiguration":
        """Build a configuration from raw form-style values."""
        if not country:
            raise err("E_CONFIG_VALUE", "country must be provided")
        if not severity:
            raise err("E_CONFIG_VALUE", "outbreak severity must be provided")
        try:
            lives = float(lives_per_100k)
        except (TypeError, ValueError) as exc:
            raise err("E_CONFIG_VALUE", f"lives_per_100k must be a number, got {lives_per_100k!r}") from exc
        if not math.isfinite(lives) or lives < 0.0:
            raise err("E_CONFIG_VALUE", f"lives_per_100k must be finite and >= 0, got {lives_per_100k!r}")
        return MandateConfiguration(
            country=str(country),
            severity=str(severity),
            scope=_coerce(Scope, scope, "scope"),
            exemptions=_coerce(Exemptions, exemptions, "exemptions"),
            coverage=Coverage.from_value(coverage),
            lives_per_100k=lives,
        )

    @staticmethod
    def from_mapping(data: Mapping[str, object]) -> "MandateConfiguration":
        return MandateConfiguration.from_values(
            country=str(data.get("country", "")),
            severity=str(data.get("severity", data.get("outbreak", ""))),
            scope=str(data.get("scope", "highrisk")),
            exemptions=str(data.get("exemptions", "medical")),
            coverage=data.get("coverage", 0.5),  # type: ignore[arg-type]
            lives_per_100k=data.get("lives_per_100k", data.get("livesPer100k", 0.0)),  # type: ignore[arg-type]
        )


@dataclass(frozen=True, eq=False)
class DesignVectors:
    """Attribute indicators for the mandate and no-mandate alternatives.

    ``mandate @ beta`` is the mandate utility and ``opt_out @ beta`` the
    no-mandate utility for any individual coefficient vector ``beta``.
    """

    mandate: np.ndarray
    opt_out: np.ndarray

    @property
    def difference(self) -> np.ndarray:
        return self.mandate - self.opt_out


def attribute_terms(config: MandateConfiguration) -> np.ndarray:
    """Non-intercept mandate attributes; reference levels stay at zero."""
    x = np.zeros(COEFFICIENT_COUNT, dtype=np.float64)
    if config.scope is Scope.ALL:
        x[Coefficient.SCOPE_ALL] = 1.0
    if config.exemptions is Exemptions.MEDICAL_RELIGIOUS:
        x[Coefficient.EX_MED_REL] = 1.0
    elif config.exemptions is Exemptions.MEDICAL_RELIGIOUS_PERSONAL:
        x[Coefficient.EX_MED_REL_PERS] = 1.0
    if config.coverage is Coverage.PCT70:
        x[Coefficient.COV70] = 1.0
    elif config.coverage is Coverage.PCT90:
        x[Coefficient.COV90] = 1.0
    x[Coefficient.LIVES] = float(config.lives_per_100k)
    return x


def build_design_vectors(config: MandateConfiguration) -> DesignVectors:
    mandate = attribute_terms(config)
    mandate[Coefficient.ASC_POLICY_A] = 1.0
    opt_out = np.zeros(COEFFICIENT_COUNT, dtype=np.float64)
    opt_out[Coefficient.ASC_OPT_OUT] = 1.0
    return DesignVectors(mandate=mandate, opt_out=opt_out)


__all__ = [
    "Coverage",
    "DesignVectors",
    "Exemptions",
    "MandateConfiguration",
    "Scope",
    "attribute_terms",
    "build_design_vectors",
]
