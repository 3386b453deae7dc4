"""Persistence helpers for evaluated mandate scenarios."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import polars as pl

from .coefficients import CoefficientTable, load_coefficient_table
from .design import MandateConfiguration
from .estimator import ChoiceStructure
from .exceptions import err
from .readout import MandateEvaluation
from .session import SupportSession

logger = logging.getLogger(__name__)

_DATASET_NAME = "scenarios"
_KEY_COLUMNS = ["label", "country", "severity", "scope", "exemptions", "coverage"]


@dataclass(frozen=True)
class ScenarioRecord:
    """Inputs and outputs of one evaluation, enough to replay its support."""

    label: str
    country: str
    severity: str
    scope: str
    exemptions: str
    coverage: float
    lives_per_100k: float
    population: float
    total_cost: float
    value_per_life: float
    seed: int
    draws: int
    choice_structure: str
    support: float
    lives_total: float
    benefit: float
    net_benefit: float
    bcr: Optional[float]
    coefficients_semver: str
    coefficients_version: str
    coefficients_digest: str
    notes: str = ""
    pinned: bool = False

    @property
    def config(self) -> MandateConfiguration:
        return MandateConfiguration.from_values(
            country=self.country,
            severity=self.severity,
            scope=self.scope,
            exemptions=self.exemptions,
            coverage=self.coverage,
            lives_per_100k=self.lives_per_100k,
        )

    @staticmethod
    def from_evaluation(
        evaluation: MandateEvaluation,
        *,
        seed: int,
        label: Optional[str] = None,
        notes: str = "",
        pinned: bool = False,
    ) -> "ScenarioRecord":
        cfg = evaluation.config
        return ScenarioRecord(
            label=label or f"{cfg.country} - {cfg.severity} - {cfg.lives_per_100k:.0f} lives/100k",
            country=cfg.country,
            severity=cfg.severity,
            scope=cfg.scope.value,
            exemptions=cfg.exemptions.value,
            coverage=cfg.coverage.value,
            lives_per_100k=float(cfg.lives_per_100k),
            population=evaluation.population,
            total_cost=evaluation.costs.total,
            value_per_life=evaluation.value_per_life,
            seed=seed,
            draws=evaluation.support.draws,
            choice_structure=evaluation.support.choice_structure.value,
            support=evaluation.support.probability,
            lives_total=evaluation.cost_benefit.lives_total,
            benefit=evaluation.cost_benefit.benefit,
            net_benefit=evaluation.cost_benefit.net_benefit,
            bcr=evaluation.cost_benefit.bcr,
            coefficients_semver=evaluation.coefficients.semver,
            coefficients_version=evaluation.coefficients.version,
            coefficients_digest=evaluation.coefficients.digest,
            notes=notes,
            pinned=pinned,
        )


_SCHEMA = {
    "label": pl.Utf8,
    "country": pl.Utf8,
    "severity": pl.Utf8,
    "scope": pl.Utf8,
    "exemptions": pl.Utf8,
    "coverage": pl.Float64,
    "lives_per_100k": pl.Float64,
    "population": pl.Float64,
    "total_cost": pl.Float64,
    "value_per_life": pl.Float64,
    "seed": pl.Int64,
    "draws": pl.Int64,
    "choice_structure": pl.Utf8,
    "support": pl.Float64,
    "lives_total": pl.Float64,
    "benefit": pl.Float64,
    "net_benefit": pl.Float64,
    "bcr": pl.Float64,
    "coefficients_semver": pl.Utf8,
    "coefficients_version": pl.Utf8,
    "coefficients_digest": pl.Utf8,
    "notes": pl.Utf8,
    "pinned": pl.Boolean,
}


def scenarios_to_frame(records: Sequence[ScenarioRecord]) -> pl.DataFrame:
    return pl.DataFrame([asdict(record) for record in records], schema=_SCHEMA)


def frame_to_scenarios(frame: pl.DataFrame) -> list[ScenarioRecord]:
    names = [f.name for f in fields(ScenarioRecord)]
    return [ScenarioRecord(**{name: row[name] for name in names}) for row in frame.iter_rows(named=True)]


@dataclass(frozen=True)
class ScenarioArtefacts:
    base_path: Path
    run_path: Path
    manifest_path: Path
    dataset_path: Path


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    messages: list[str]

    def raise_for_status(self) -> None:
        if not self.ok:
            raise err("E_VALIDATION", "scenario run failed validation:\n- " + "\n- ".join(self.messages))

    def __bool__(self) -> bool:  # pragma: no cover - convenience
        return self.ok


def _coefficients_entry(frame: pl.DataFrame) -> Optional[dict[str, str]]:
    tables = frame.select(["coefficients_semver", "coefficients_version", "coefficients_digest"]).unique()
    if tables.height != 1:
        return None
    row = tables.row(0, named=True)
    return {
        "semver": row["coefficients_semver"],
        "version": row["coefficients_version"],
        "digest": row["coefficients_digest"],
    }


def _check_frame(frame: pl.DataFrame, *, seed: object, draws: object) -> list[str]:
    """Row-level consistency checks shared by pre-write and post-write validation."""
    messages: list[str] = []
    if not frame.height:
        return messages

    has_null = frame.select(
        pl.any_horizontal([pl.col(col).is_null() for col in _KEY_COLUMNS]).alias("has_null")
    )["has_null"]
    if bool(has_null.any()):
        messages.append("scenarios contain null key fields")

    out_of_range = frame.filter((pl.col("support") <= 0.0) | (pl.col("support") >= 1.0))
    if out_of_range.height:
        messages.append(f"support outside (0, 1) for {out_of_range.height} scenarios")

    if set(frame["seed"].unique().to_list()) - {seed}:
        messages.append("scenarios mix draw panels from different seeds")
    if set(frame["draws"].unique().to_list()) - {draws}:
        messages.append("scenarios mix draw panels of different sizes")
    if frame["coefficients_digest"].n_unique() > 1:
        messages.append("scenarios mix coefficient tables")

    bcr_mismatch = frame.filter(
        (pl.col("bcr").is_null() & (pl.col("total_cost") > 0))
        | (pl.col("bcr").is_not_null() & (pl.col("total_cost") <= 0))
    )
    if bcr_mismatch.height:
        messages.append("bcr defined inconsistently with total_cost")

    unknown = set(frame["choice_structure"].unique().to_list()) - {
        structure.value for structure in ChoiceStructure
    }
    if unknown:
        messages.append(f"unexpected choice structures: {sorted(unknown)}")
    return messages


def materialise_scenarios(
    records: Sequence[ScenarioRecord],
    *,
    output_base: Path,
    seed: int,
    draws: int,
    timestamp: Optional[datetime] = None,
) -> ScenarioArtefacts:
    """Persist ``records`` under ``output_base`` and validate the run.

    Records are checked before anything is written, so a rejected batch leaves
    no run directory behind.
    """
    frame = scenarios_to_frame(records)
    messages = _check_frame(frame, seed=seed, draws=draws)
    ValidationResult(ok=not messages, messages=messages).raise_for_status()

    ts = timestamp or datetime.now(timezone.utc)
    ts_label = ts.strftime("%Y%m%dT%H%M%SZ")
    run_dir = output_base / f"seed={seed}" / f"draws={draws}" / ts_label
    run_dir.mkdir(parents=True, exist_ok=True)

    dataset_path = run_dir / f"{_DATASET_NAME}.parquet"
    frame.write_parquet(dataset_path, compression="zstd")

    manifest_path = run_dir / "manifest.json"
    manifest = {
        "rng": {"algorithm": "mulberry32", "seed": seed},
        "draws": draws,
        "coefficients": _coefficients_entry(frame),
        "generated_at_utc": ts_label,
        "datasets": {_DATASET_NAME: dataset_path.name},
        "summary": {
            "rows": frame.height,
            "pinned": int(frame["pinned"].sum()) if frame.height else 0,
        },
    }
    manifest_path.write_text(json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8")
    logger.info("persisted %d scenarios to %s", frame.height, run_dir)

    validate_scenario_run(run_dir).raise_for_status()

    return ScenarioArtefacts(
        base_path=output_base,
        run_path=run_dir,
        manifest_path=manifest_path,
        dataset_path=dataset_path,
    )


def _resolve_dataset(manifest_path: Path, manifest: dict) -> Path:
    raw = manifest.get("datasets", {}).get(_DATASET_NAME)
    if raw is None:
        raise err("E_MANIFEST", f"manifest missing dataset entry for '{_DATASET_NAME}'")
    path = Path(raw)
    if not path.is_absolute():
        path = (manifest_path.parent / path).resolve()
    return path


def load_scenarios(manifest_path: Path) -> list[ScenarioRecord]:
    """Re-open persisted scenarios from a manifest.json path."""
    if not manifest_path.exists():
        raise FileNotFoundError(f"manifest not found: {manifest_path}")
    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    path = _resolve_dataset(manifest_path, manifest)
    if not path.exists():
        raise err("E_DATASET_NOT_FOUND", f"dataset '{_DATASET_NAME}' not found at {path}")
    return frame_to_scenarios(pl.read_parquet(path))


def validate_scenario_run(run_dir: Path) -> ValidationResult:
    """Re-open a persisted run and check manifest/dataset consistency."""
    manifest_path = run_dir / "manifest.json"
    if not manifest_path.exists():
        return ValidationResult(ok=False, messages=["manifest.json missing"])
    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))

    messages: list[str] = []
    raw = manifest.get("datasets", {}).get(_DATASET_NAME)
    if not raw:
        return ValidationResult(ok=False, messages=[f"dataset path missing for {_DATASET_NAME}"])
    path = _resolve_dataset(manifest_path, manifest)
    if not path.exists():
        return ValidationResult(ok=False, messages=[f"dataset {_DATASET_NAME} not found at {path}"])

    frame = pl.read_parquet(path)
    missing = set(_SCHEMA) - set(frame.columns)
    if missing:
        return ValidationResult(ok=False, messages=[f"scenarios missing columns: {sorted(missing)}"])

    if int(manifest.get("summary", {}).get("rows", -1)) != frame.height:
        messages.append("manifest row count mismatch for scenarios")

    messages.extend(
        _check_frame(frame, seed=manifest.get("rng", {}).get("seed"), draws=manifest.get("draws"))
    )
    if frame.height and _coefficients_entry(frame) != manifest.get("coefficients"):
        messages.append("manifest coefficient table does not match scenarios")

    return ValidationResult(ok=not messages, messages=messages)


def replay_support(record: ScenarioRecord, table: Optional[CoefficientTable] = None) -> float:
    """Re-estimate a stored scenario's support from its recorded seed and draws.

    ``table`` must be the coefficient table the scenario was evaluated with;
    the default table is used when omitted.
    """
    table = table or load_coefficient_table()
    if table.digest != record.coefficients_digest:
        raise err(
            "E_TABLE_MISMATCH",
            f"scenario '{record.label}' was evaluated with coefficient table "
            f"{record.coefficients_semver} ({record.coefficients_version}); "
            f"replay table is {table.semver} ({table.version})",
        )
    session = SupportSession(seed=record.seed, draws=record.draws, table=table, cache=False)
    return session.estimate(record.config, choice_structure=ChoiceStructure(record.choice_structure)).probability


__all__ = [
    "ScenarioArtefacts",
    "ScenarioRecord",
    "ValidationResult",
    "frame_to_scenarios",
    "load_scenarios",
    "materialise_scenarios",
    "replay_support",
    "scenarios_to_frame",
    "validate_scenario_run",
]
