"""Mixed-logit coefficient tables keyed by country and outbreak severity."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Dict, Iterator, Mapping, Tuple

import numpy as np
import yaml

from .exceptions import err


class Coefficient(IntEnum):
    """Mandate attributes in the fixed order used to consume draws."""

    ASC_POLICY_A = 0
    ASC_OPT_OUT = 1
    SCOPE_ALL = 2
    EX_MED_REL = 3
    EX_MED_REL_PERS = 4
    COV70 = 5
    COV90 = 6
    LIVES = 7

    @property
    def key(self) -> str:
        return _KEYS[self]

    @classmethod
    def from_key(cls, key: str) -> "Coefficient":
        try:
            return _BY_KEY[key]
        except KeyError:
            raise err("E_PARAM_COEFFICIENT", f"unknown coefficient name '{key}'") from None


_KEYS: Dict[Coefficient, str] = {
    Coefficient.ASC_POLICY_A: "ascPolicyA",
    Coefficient.ASC_OPT_OUT: "ascOptOut",
    Coefficient.SCOPE_ALL: "scopeAll",
    Coefficient.EX_MED_REL: "exMedRel",
    Coefficient.EX_MED_REL_PERS: "exMedRelPers",
    Coefficient.COV70: "cov70",
    Coefficient.COV90: "cov90",
    Coefficient.LIVES: "lives",
}
_BY_KEY: Dict[str, Coefficient] = {value: key for key, value in _KEYS.items()}

COEFFICIENT_ORDER: Tuple[Coefficient, ...] = tuple(Coefficient)
COEFFICIENT_COUNT = len(COEFFICIENT_ORDER)

DEFAULT_TABLE_PATH = Path(__file__).resolve().parent / "data" / "mxl_coefficients.yaml"


@dataclass(frozen=True, eq=False)
class CoefficientVector:
    """Eight coefficients stored by :class:`Coefficient` index."""

    values: np.ndarray

    def __post_init__(self) -> None:
        array = np.array(self.values, dtype=np.float64)
        if array.shape != (COEFFICIENT_COUNT,):
            raise err(
                "E_PARAM_COEFFICIENT",
                f"coefficient vector must have {COEFFICIENT_COUNT} entries, got shape {array.shape}",
            )
        array.setflags(write=False)
        object.__setattr__(self, "values", array)

    def __getitem__(self, name: Coefficient) -> float:
        return float(self.values[int(name)])

    def as_dict(self) -> Dict[str, float]:
        return {name.key: self[name] for name in COEFFICIENT_ORDER}


@dataclass(frozen=True)
class CoefficientPair:
    mean: CoefficientVector
    sd: CoefficientVector


@dataclass(frozen=True)
class CoefficientTable:
    """Static (country, severity) -> (mean, sd) lookup."""

    entries: Mapping[Tuple[str, str], CoefficientPair]
    version: str = "0.0.0"
    semver: str = "0.0.0"

    def lookup(self, country: str, severity: str) -> CoefficientPair:
        try:
            return self.entries[(country, severity)]
        except KeyError:
            raise err(
                "E_PARAM_MISSING",
                f"no preference estimates for country={country!r} severity={severity!r}",
            ) from None

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(sorted(self.entries))

    @property
    def digest(self) -> str:
        """sha256 over every (country, severity) mean and sd, in sorted key order."""
        hasher = hashlib.sha256()
        for country, severity in sorted(self.entries):
            pair = self.entries[(country, severity)]
            hasher.update(f"{country}\x00{severity}\x00".encode("utf-8"))
            hasher.update(pair.mean.values.astype("<f8").tobytes())
            hasher.update(pair.sd.values.astype("<f8").tobytes())
        return hasher.hexdigest()

    def countries(self) -> list[str]:
        return sorted({country for country, _ in self.entries})

    def severities(self, country: str) -> list[str]:
        return sorted(severity for c, severity in self.entries if c == country)

    @staticmethod
    def from_mapping(data: Mapping[str, object]) -> "CoefficientTable":
        root = data.get("coefficients")
        if not isinstance(root, Mapping):
            raise err("E_YAML_ROOT", "coefficient table must contain a 'coefficients' mapping")
        entries: Dict[Tuple[str, str], CoefficientPair] = {}
        for country, by_severity in root.items():
            if not isinstance(by_severity, Mapping):
                raise err("E_PARAM_VALUE", f"coefficients[{country}] must be a mapping")
            for severity, node in by_severity.items():
                label = f"coefficients[{country}][{severity}]"
                if not isinstance(node, Mapping):
                    raise err("E_PARAM_VALUE", f"{label} must be a mapping")
                mean = _parse_vector(node.get("mean"), label=f"{label}.mean", required=True)
                sd = _parse_vector(node.get("sd", {}), label=f"{label}.sd", required=False)
                entries[(str(country), str(severity))] = CoefficientPair(mean=mean, sd=sd)
        return CoefficientTable(
            entries=entries,
            version=str(data.get("version", "0.0.0")),
            semver=str(data.get("semver", "0.0.0")),
        )


def _parse_vector(node: object, *, label: str, required: bool) -> CoefficientVector:
    if node is None:
        node = {}
    if not isinstance(node, Mapping):
        raise err("E_PARAM_VALUE", f"{label} must be a mapping")
    values = np.zeros(COEFFICIENT_COUNT, dtype=np.float64)
    for key in node:
        Coefficient.from_key(str(key))
    for name in COEFFICIENT_ORDER:
        raw = node.get(name.key)
        if raw is None:
            if required:
                raise err("E_PARAM_COEFFICIENT", f"{label} missing coefficient '{name.key}'")
            # absent sd means a fixed (non-random) coefficient
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            raise err("E_PARAM_VALUE", f"{label}.{name.key} must be a number, got {raw!r}") from exc
        if not math.isfinite(value):
            raise err("E_PARAM_VALUE", f"{label}.{name.key} must be finite, got {raw!r}")
        values[int(name)] = value
    return CoefficientVector(values)


def load_coefficient_table(path: Path | None = None) -> CoefficientTable:
    """Load a coefficient table; defaults to the embedded study estimates."""
    table_path = path or DEFAULT_TABLE_PATH
    if not table_path.exists():
        raise FileNotFoundError(f"coefficient table not found: {table_path}")
    with table_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, Mapping):
        raise err("E_YAML_ROOT", f"coefficient table root must be a mapping: {table_path}")
    return CoefficientTable.from_mapping(data)


__all__ = [
    "COEFFICIENT_COUNT",
    "COEFFICIENT_ORDER",
    "Coefficient",
    "CoefficientPair",
    "CoefficientTable",
    "CoefficientVector",
    "DEFAULT_TABLE_PATH",
    "load_coefficient_table",
]
