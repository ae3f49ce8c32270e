"""FastMCP server exposing the Ripple policy simulation tool."""
from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, cast
from pathlib import Path
import sys

from fastmcp import FastMCP

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ripple_model.api.json_serialization import to_json_ready
from ripple_model.api.policy_settings_schema import SimulationRequest, parameter_bounds
from ripple_model.data_loader.population_loader import load_population
from ripple_model.model.simulation import run_simulation

# Simulations are CPU-bound; keep them off the event loop
_simulation_executor = ThreadPoolExecutor(max_workers=5, thread_name_prefix="ripple-sim")

server = FastMCP(
    name="ripple-policy-simulator",
    version="0.1.0",
    instructions=(
        "Run Monte Carlo policy simulations over a synthetic population. "
        "Call run_policy_simulation with the path of a population file (.xlsx or .csv) and a "
        "request matching the SimulationRequest schema; the result holds per-metric means with "
        "95% intervals and an equity breakdown by race, county, income bracket and sector."
    ),
)


def _simulate(population_path: str, request: SimulationRequest) -> Dict[str, Any]:
    population = load_population(population_path)
    summary = run_simulation(
        population,
        request.policy.to_settings(),
        n_trials=request.n_trials,
        seed=request.seed,
    )
    return summary.to_dict()


@server.tool(name="run_policy_simulation", description="Run a Monte Carlo policy simulation")
async def run_policy_tool(population_path: str, request: SimulationRequest | None = None) -> Dict[str, Any]:
    """Simulate the policy levers in ``request`` against the population at ``population_path``."""
    request_model = request or SimulationRequest()

    loop = asyncio.get_event_loop()
    raw_result = await loop.run_in_executor(_simulation_executor, _simulate, population_path, request_model)

    return cast(Dict[str, Any], to_json_ready(raw_result))


@server.resource(
    "resource://ripple/parameter-bounds",
    title="Policy parameter bounds",
    description="Accepted range, step and default for every policy lever.",
)
def parameter_bounds_resource() -> Dict[str, Any]:
    return parameter_bounds()


def run() -> None:
    """Run the FastMCP server over HTTP."""

    server.run(transport="http", port=8080)


if __name__ == "__main__":
    run()
