"""CLI for estimating public support and the benefit-cost readout of a mandate."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import SimulationConfig, load_simulation_config
from .cost_benefit import CostInputs, SensitivityBounds, population_from_millions
from .design import MandateConfiguration
from .estimator import ChoiceStructure
from .exceptions import MandateEvalError
from .logging_utils import configure_logging
from .readout import evaluate_mandate
from .scenarios import ScenarioRecord, materialise_scenarios
from .session import SupportSession

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mandate-eval",
        description="Estimate mixed-logit public support and the benefit-cost readout of a mandate design.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    parser.add_argument("--log-file", type=Path, help="Optional log file path.")
    sub = parser.add_subparsers(dest="command", required=True)

    est = sub.add_parser("estimate", help="Evaluate one mandate configuration.")
    est.add_argument("--country", required=True, help="Country code, e.g. AU, IT, FR.")
    est.add_argument("--severity", required=True, help="Outbreak severity: mild or severe.")
    est.add_argument("--scope", default="highrisk", choices=["highrisk", "all"])
    est.add_argument("--exemptions", default="medical", choices=["medical", "medrel", "medrelpers"])
    est.add_argument("--coverage", type=float, default=0.5, help="Coverage threshold: 0.5, 0.7 or 0.9.")
    est.add_argument("--lives-per-100k", type=float, default=0.0, help="Expected lives saved per 100,000 people.")
    est.add_argument("--population-millions", type=float, default=0.0, help="Population in millions.")
    est.add_argument("--value-per-life", type=float, help="Monetary value per life saved (overrides config).")
    est.add_argument("--cost-admin", type=float, default=0.0)
    est.add_argument("--cost-comm", type=float, default=0.0)
    est.add_argument("--cost-enforce", type=float, default=0.0)
    est.add_argument("--cost-it", type=float, default=0.0)
    est.add_argument("--cost-support", type=float, default=0.0)
    est.add_argument("--lives-low", type=float)
    est.add_argument("--lives-high", type=float)
    est.add_argument("--value-per-life-low", type=float)
    est.add_argument("--value-per-life-high", type=float)
    est.add_argument("--cost-low", type=float)
    est.add_argument("--cost-high", type=float)
    est.add_argument("--config", type=Path, help="Simulation config YAML (seed, draws, coefficients, valuation).")
    est.add_argument("--seed", type=int, help="Random source seed (overrides config).")
    est.add_argument("--draws", type=int, help="Number of panel draws (overrides config).")
    est.add_argument(
        "--choice-structure",
        default=ChoiceStructure.BINARY.value,
        choices=[structure.value for structure in ChoiceStructure],
    )
    est.add_argument("--scenario-store", type=Path, help="Persist the evaluation as a scenario under this directory.")
    est.add_argument("--label", help="Scenario label when persisting.")
    est.add_argument("--notes", default="", help="Scenario notes when persisting.")
    return parser


def _run_estimate(args: argparse.Namespace) -> dict[str, object]:
    base = load_simulation_config(args.config.expanduser().resolve()) if args.config else SimulationConfig()
    config = base.with_overrides(seed=args.seed, draws=args.draws, value_per_life=args.value_per_life)

    mandate = MandateConfiguration.from_values(
        country=args.country,
        severity=args.severity,
        scope=args.scope,
        exemptions=args.exemptions,
        coverage=args.coverage,
        lives_per_100k=args.lives_per_100k,
    )
    costs = CostInputs(
        administration=args.cost_admin,
        communication=args.cost_comm,
        enforcement=args.cost_enforce,
        it_systems=args.cost_it,
        support_services=args.cost_support,
    )
    bounds = SensitivityBounds(
        lives_low=args.lives_low,
        lives_high=args.lives_high,
        value_per_life_low=args.value_per_life_low,
        value_per_life_high=args.value_per_life_high,
        cost_low=args.cost_low,
        cost_high=args.cost_high,
    )

    session = SupportSession.from_config(config)
    evaluation = evaluate_mandate(
        session,
        mandate,
        population=population_from_millions(args.population_millions),
        costs=costs,
        value_per_life=config.valuation.value_per_life,
        bounds=bounds,
        choice_structure=ChoiceStructure(args.choice_structure),
    )
    payload = evaluation.as_dict()
    payload["settings"] = {
        "seed": config.rng.seed,
        "draws": config.draws,
        "horizon": config.valuation.horizon,
        "currency_label": config.valuation.currency_label,
    }

    if args.scenario_store:
        record = ScenarioRecord.from_evaluation(
            evaluation, seed=config.rng.seed, label=args.label, notes=args.notes
        )
        artefacts = materialise_scenarios(
            [record],
            output_base=args.scenario_store.expanduser().resolve(),
            seed=config.rng.seed,
            draws=config.draws,
        )
        payload["scenario_manifest"] = str(artefacts.manifest_path)
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    level = getattr(logging, str(args.log_level).upper(), None)
    if not isinstance(level, int):
        parser.error(f"unknown log level: {args.log_level}")
    configure_logging(level, args.log_file)

    try:
        payload = _run_estimate(args)
    except MandateEvalError as exc:
        logger.error("evaluation failed: %s", exc)
        print(json.dumps(exc.failure_record(), indent=2), file=sys.stderr)
        return 2

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
