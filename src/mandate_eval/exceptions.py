"""Failure taxonomy shared by the support simulator and its collaborators.

Every failure carries a stable ``E_*`` code so that callers (the CLI, the
scenario store, any UI sitting on top) can map it onto a neutral
"not available" readout without parsing messages.  The two failures the
estimator can raise on bad setup get their own subclasses so that callers can
catch them by type as well as by code.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Tuple


class FailureCategory(Enum):
    """High-level failure buckets."""

    PARAMETERS = "parameters_unavailable"
    PANEL = "draw_panel_invalid"
    NUMERIC = "numeric_failure"
    CONFIGURATION = "configuration_invalid"
    IO = "io_failure"
    VALIDATION = "validation_failure"


_FAILURE_CODE_MAP: Mapping[str, Tuple[FailureCategory, str]] = {
    "E_PARAM_MISSING": (FailureCategory.PARAMETERS, "parameters_missing"),
    "E_PARAM_COEFFICIENT": (FailureCategory.PARAMETERS, "parameters_incomplete"),
    "E_PARAM_VALUE": (FailureCategory.PARAMETERS, "parameters_non_numeric"),
    "E_PANEL_EMPTY": (FailureCategory.PANEL, "panel_empty"),
    "E_PANEL_COEFFICIENT": (FailureCategory.PANEL, "panel_coefficient_missing"),
    "E_PANEL_SHAPE": (FailureCategory.PANEL, "panel_shape_mismatch"),
    "E_SEED_RANGE": (FailureCategory.CONFIGURATION, "seed_out_of_range"),
    "E_DRAW_COUNT": (FailureCategory.CONFIGURATION, "draw_count_invalid"),
    "E_CONFIG_VALUE": (FailureCategory.CONFIGURATION, "config_value_invalid"),
    "E_RNG_ALGORITHM": (FailureCategory.CONFIGURATION, "rng_algorithm_unsupported"),
    "E_SUPPORT_NONFINITE": (FailureCategory.NUMERIC, "support_nonfinite"),
    "E_SUPPORT_SATURATED": (FailureCategory.NUMERIC, "support_saturated"),
    "E_TABLE_MISMATCH": (FailureCategory.PARAMETERS, "coefficient_table_mismatch"),
    "E_YAML_ROOT": (FailureCategory.CONFIGURATION, "yaml_root_not_mapping"),
    "E_DATASET_NOT_FOUND": (FailureCategory.IO, "dataset_missing"),
    "E_MANIFEST": (FailureCategory.IO, "manifest_invalid"),
    "E_VALIDATION": (FailureCategory.VALIDATION, "validation_failed"),
}


@dataclass(frozen=True)
class ErrorContext:
    """Structured payload describing a failure.

    ``code`` is the local ``E_*`` identifier; the properties map it onto the
    taxonomy above so a single well-formed record can be emitted.
    """

    code: str
    detail: str

    def as_message(self) -> str:
        return f"{self.code}: {self.detail}"

    @property
    def failure_category(self) -> FailureCategory:
        return _FAILURE_CODE_MAP.get(
            self.code, (FailureCategory.VALIDATION, self.code)
        )[0]

    @property
    def failure_code(self) -> str:
        return _FAILURE_CODE_MAP.get(
            self.code, (FailureCategory.VALIDATION, self.code)
        )[1]


class MandateEvalError(RuntimeError):
    """Base runtime error that preserves the failure context."""

    def __init__(self, context: ErrorContext) -> None:
        super().__init__(context.as_message())
        self.context = context

    @property
    def code(self) -> str:
        return self.context.code

    def failure_record(self) -> Dict[str, str]:
        return {
            "code": self.context.code,
            "detail": self.context.detail,
            "failure_category": self.context.failure_category.value,
            "failure_code": self.context.failure_code,
        }


class MissingParametersError(MandateEvalError):
    """No coefficient entry exists for the requested country/severity pair."""


class InvalidPanelError(MandateEvalError):
    """The draw panel is empty or lacks a coefficient column."""


_ERROR_TYPES: Mapping[str, type[MandateEvalError]] = {
    "E_PARAM_MISSING": MissingParametersError,
    "E_PANEL_EMPTY": InvalidPanelError,
    "E_PANEL_COEFFICIENT": InvalidPanelError,
    "E_PANEL_SHAPE": InvalidPanelError,
}


def err(code: str, detail: str) -> MandateEvalError:
    """Build the error matching ``code`` with minimal ceremony."""

    error_type = _ERROR_TYPES.get(code, MandateEvalError)
    return error_type(ErrorContext(code=code, detail=detail))


__all__ = [
    "ErrorContext",
    "FailureCategory",
    "InvalidPanelError",
    "MandateEvalError",
    "MissingParametersError",
    "err",
]
