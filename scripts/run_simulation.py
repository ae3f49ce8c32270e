"""Command-line runner for a single policy simulation.

Executing this script will:
  • Load a population workbook or CSV
  • Compute its baseline metrics
  • Run the Monte Carlo simulation for the policy levers given on the command line
  • Optionally attach narrative insights (offline fallback when no API key is set)

Outputs are written to ``outputs/simulation_<timestamp>.json``.
"""
from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ripple_model.api.json_serialization import json_default, to_json_ready
from ripple_model.api.policy_settings_schema import PARAMETER_BOUNDS, PolicySettingsModel
from ripple_model.config import load_config
from ripple_model.orchestration.session import SimulationSession

POLICY_FIELDS = [name for name in PARAMETER_BOUNDS if name != "n_trials"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a Ripple policy simulation")
    parser.add_argument("population", type=Path, help="Population file (.xlsx, .xlsm or .csv)")
    parser.add_argument("--trials", type=int, default=100, help="Number of Monte Carlo trials")
    parser.add_argument("--seed", type=int, default=None, help="Root random seed")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration overrides")
    parser.add_argument("--insights", action="store_true", help="Attach narrative insights")
    parser.add_argument("--output-dir", type=Path, default=Path("outputs"))
    for name in POLICY_FIELDS:
        _low, _high, _step, default, description = PARAMETER_BOUNDS[name]
        parser.add_argument(f"--{name.replace('_', '-')}", dest=name, type=float, default=default, help=description)
    return parser


def run_once(args: argparse.Namespace) -> Dict[str, Any]:
    policy = PolicySettingsModel(**{name: getattr(args, name) for name in POLICY_FIELDS}).to_settings()
    config = load_config(args.config) if args.config else None

    session = SimulationSession(config=config)
    baseline = session.load_population_file(args.population)
    summary = session.simulate(policy, args.trials, seed=args.seed)

    result: Dict[str, Any] = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "population_file": str(args.population),
        "baseline": baseline.to_dict(),
        "summary": summary.to_dict(),
    }
    if args.insights:
        result["insights"] = {kind.value: text for kind, text in session.generate_insights().items()}
    return result


def main(argv: Optional[Sequence[str]] = None) -> Path:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    output_payload = to_json_ready(run_once(args))

    output_dir = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    file_name = f"simulation_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}.json"
    output_path = output_dir / file_name

    with output_path.open("w", encoding="utf-8") as fh:
        json.dump(output_payload, fh, indent=2, default=json_default)

    print(f"Simulation output written to {output_path}")
    return output_path


if __name__ == "__main__":
    main()
