"""Configuration helpers for the support simulator and valuation settings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .exceptions import err
from .rng import DEFAULT_DRAWS, DEFAULT_SEED

_SUPPORTED_ALGORITHMS = ("mulberry32",)


def _require_mapping(node: object, *, label: str) -> Mapping[str, object]:
    if not isinstance(node, Mapping):
        raise err("E_CONFIG_VALUE", f"{label} must be a mapping, got {type(node)!r}")
    return node  # type: ignore[return-value]


def _cast_float(value: object, *, label: str) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise err("E_CONFIG_VALUE", f"{label} must be a number, got {value!r}") from exc


def _cast_int(value: object, *, label: str) -> int:
    if isinstance(value, bool):
        raise err("E_CONFIG_VALUE", f"{label} must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise err("E_CONFIG_VALUE", f"{label} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class RNGConfig:
    algorithm: str = "mulberry32"
    seed: int = DEFAULT_SEED


@dataclass(frozen=True)
class ValuationConfig:
    value_per_life: float = 0.0
    horizon: str = "1 year"
    currency_label: str = "local currency units"


@dataclass(frozen=True)
class SimulationConfig:
    semver: str = "0.0.0"
    version: str = "0.0.0"
    rng: RNGConfig = field(default_factory=RNGConfig)
    draws: int = DEFAULT_DRAWS
    coefficients: Optional[Path] = None
    valuation: ValuationConfig = field(default_factory=ValuationConfig)

    def with_overrides(
        self,
        *,
        seed: Optional[int] = None,
        draws: Optional[int] = None,
        value_per_life: Optional[float] = None,
    ) -> "SimulationConfig":
        config = self
        if seed is not None:
            config = replace(config, rng=replace(config.rng, seed=_check_seed(seed)))
        if draws is not None:
            config = replace(config, draws=_check_draws(draws))
        if value_per_life is not None:
            config = replace(
                config,
                valuation=replace(config.valuation, value_per_life=float(value_per_life)),
            )
        return config

    @staticmethod
    def from_mapping(data: Mapping[str, object], *, base_dir: Optional[Path] = None) -> "SimulationConfig":
        semver = str(data.get("semver", "0.0.0"))
        version = str(data.get("version", "0.0.0"))

        rng_node = _require_mapping(data.get("rng", {}), label="rng")
        algorithm = str(rng_node.get("algorithm", "mulberry32"))
        if algorithm not in _SUPPORTED_ALGORITHMS:
            raise err("E_RNG_ALGORITHM", f"unsupported rng.algorithm '{algorithm}'")
        seed = _check_seed(_cast_int(rng_node.get("seed", DEFAULT_SEED), label="rng.seed"))
        draws = _check_draws(_cast_int(data.get("draws", DEFAULT_DRAWS), label="draws"))

        coefficients: Optional[Path] = None
        raw_coefficients = data.get("coefficients")
        if raw_coefficients:
            coefficients = Path(str(raw_coefficients))
            if not coefficients.is_absolute() and base_dir is not None:
                coefficients = (base_dir / coefficients).resolve()

        valuation = _parse_valuation(_require_mapping(data.get("valuation", {}), label="valuation"))

        return SimulationConfig(
            semver=semver,
            version=version,
            rng=RNGConfig(algorithm=algorithm, seed=seed),
            draws=draws,
            coefficients=coefficients,
            valuation=valuation,
        )


def _check_seed(seed: int) -> int:
    if not (0 <= seed < 2 ** 32):
        raise err("E_SEED_RANGE", f"rng.seed {seed} outside [0, 2^32)")
    return seed


def _check_draws(draws: int) -> int:
    if draws < 1:
        raise err("E_DRAW_COUNT", f"draws must be >= 1, got {draws}")
    return draws


def _parse_valuation(node: Mapping[str, object]) -> ValuationConfig:
    value_per_life = _cast_float(node.get("value_per_life", 0.0), label="valuation.value_per_life")
    if value_per_life < 0.0:
        raise err("E_CONFIG_VALUE", f"valuation.value_per_life must be >= 0, got {value_per_life}")
    return ValuationConfig(
        value_per_life=value_per_life,
        horizon=str(node.get("horizon", "1 year")),
        currency_label=str(node.get("currency_label", "local currency units")),
    )


def load_simulation_config(path: Path) -> SimulationConfig:
    """Load and validate the simulation config from ``path``."""
    if not path.exists():
        raise FileNotFoundError(f"simulation config not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise err("E_YAML_ROOT", f"simulation config root must be a mapping: {path}")
    return SimulationConfig.from_mapping(data, base_dir=path.parent)


__all__ = [
    "RNGConfig",
    "SimulationConfig",
    "ValuationConfig",
    "load_simulation_config",
]
