from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from mandate_eval import Coefficient, CoefficientTable, load_coefficient_table
from mandate_eval.exceptions import MandateEvalError, MissingParametersError

_AU_MILD_MEAN = {
    "ascPolicyA": 0.464,
    "ascOptOut": -0.572,
    "scopeAll": -0.319,
    "exMedRel": -0.157,
    "exMedRelPers": -0.267,
    "cov70": 0.171,
    "cov90": 0.158,
    "lives": 0.072,
}


def _entry(mean: dict, sd: dict | None = None) -> dict:
    node: dict = {"mean": mean}
    if sd is not None:
        node["sd"] = sd
    return node


def test_embedded_table_covers_study_cells(table: CoefficientTable) -> None:
    assert list(table) == [
        ("AU", "mild"),
        ("AU", "severe"),
        ("FR", "mild"),
        ("FR", "severe"),
        ("IT", "mild"),
        ("IT", "severe"),
    ]
    assert table.countries() == ["AU", "FR", "IT"]
    assert table.severities("IT") == ["mild", "severe"]


def test_embedded_means_preserved(table: CoefficientTable) -> None:
    pair = table.lookup("AU", "mild")
    assert pair.mean.as_dict() == _AU_MILD_MEAN
    assert table.lookup("FR", "severe").mean[Coefficient.COV90] == 0.398
    assert table.lookup("IT", "severe").mean[Coefficient.ASC_POLICY_A] == 0.799


def test_embedded_sds_positive(table: CoefficientTable) -> None:
    for key in table:
        pair = table.lookup(*key)
        assert (pair.sd.values > 0).all()
    au_mild = table.lookup("AU", "mild")
    assert au_mild.sd[Coefficient.LIVES] < au_mild.mean[Coefficient.LIVES]


def test_digest_tracks_table_content(table: CoefficientTable) -> None:
    assert table.digest == load_coefficient_table().digest
    shifted = CoefficientTable.from_mapping(
        {"coefficients": {"AU": {"mild": _entry({**_AU_MILD_MEAN, "ascOptOut": 0.5})}}}
    )
    original = CoefficientTable.from_mapping({"coefficients": {"AU": {"mild": _entry(_AU_MILD_MEAN)}}})
    assert shifted.digest != original.digest
    assert len(original.digest) == 64


def test_unknown_cell_fails_cleanly(table: CoefficientTable) -> None:
    with pytest.raises(MissingParametersError) as excinfo:
        table.lookup("DE", "mild")
    assert excinfo.value.code == "E_PARAM_MISSING"
    assert excinfo.value.failure_record()["failure_category"] == "parameters_unavailable"
    with pytest.raises(MissingParametersError):
        table.lookup("AU", "moderate")


def test_missing_sd_defaults_to_zero() -> None:
    table = CoefficientTable.from_mapping({"coefficients": {"AU": {"mild": _entry(_AU_MILD_MEAN)}}})
    assert (table.lookup("AU", "mild").sd.values == 0.0).all()

    partial = CoefficientTable.from_mapping(
        {"coefficients": {"AU": {"mild": _entry(_AU_MILD_MEAN, {"lives": 0.01})}}}
    )
    sd = partial.lookup("AU", "mild").sd
    assert sd[Coefficient.LIVES] == 0.01
    assert sd[Coefficient.SCOPE_ALL] == 0.0


def test_missing_mean_coefficient_rejected() -> None:
    mean = dict(_AU_MILD_MEAN)
    del mean["lives"]
    with pytest.raises(MandateEvalError) as excinfo:
        CoefficientTable.from_mapping({"coefficients": {"AU": {"mild": _entry(mean)}}})
    assert excinfo.value.code == "E_PARAM_COEFFICIENT"


def test_unknown_coefficient_rejected() -> None:
    mean = dict(_AU_MILD_MEAN, cov80=0.1)
    with pytest.raises(MandateEvalError) as excinfo:
        CoefficientTable.from_mapping({"coefficients": {"AU": {"mild": _entry(mean)}}})
    assert excinfo.value.code == "E_PARAM_COEFFICIENT"


def test_non_numeric_coefficient_rejected() -> None:
    mean = dict(_AU_MILD_MEAN, lives="lots")
    with pytest.raises(MandateEvalError) as excinfo:
        CoefficientTable.from_mapping({"coefficients": {"AU": {"mild": _entry(mean)}}})
    assert excinfo.value.code == "E_PARAM_VALUE"


def test_load_alternative_table(tmp_path: Path) -> None:
    path = tmp_path / "coefficients.yaml"
    path.write_text(
        yaml.safe_dump(
            {"version": "test", "coefficients": {"NZ": {"severe": _entry(_AU_MILD_MEAN)}}}
        ),
        encoding="utf-8",
    )
    table = load_coefficient_table(path)
    assert table.version == "test"
    assert ("NZ", "severe") in table
    assert ("AU", "mild") not in table


def test_load_missing_table(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_coefficient_table(tmp_path / "absent.yaml")


def test_coefficient_keys_round_trip() -> None:
    for name in Coefficient:
        assert Coefficient.from_key(name.key) is name
