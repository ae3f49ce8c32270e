"""
Monte Carlo simulation orchestrator
===================================

Runs the policy transform over the whole population for ``N`` independent
trials and reduces the outcome into a :class:`SimulationSummary`:

* per-trial aggregates (:class:`TrialResult`),
* per-metric mean with an empirical 95% interval (order statistics at
  ``floor(N·0.025)`` and ``floor(N·0.975)``, not a normal approximation),
* an equity breakdown by race, county, income bracket and sector, each group
  normalised against its *own* baseline mean income.

Trials are independent.  Each one gets its own random stream derived from a
root :class:`numpy.random.SeedSequence` (``spawn_key=(trial_index,)``), and the
per-group income changes are combined through an additive, immutable
:class:`GroupAccumulator`.  Any split of the trial range therefore merges back
to exactly the result of a single pass, so chunks can be run in any order or
in parallel.

Execution is chunked: :meth:`MonteCarloSimulator.iter_chunks` yields progress
after each batch of trials and honours a :class:`CancellationToken` between
batches.  A cancelled or failed run never publishes a summary.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ripple_model.baseline import BaselineMetrics, compute_baseline
from ripple_model.config import ModelConfig, default_config
from ripple_model.entities import PersonRecord, PolicySettings, TransformedPerson
from ripple_model.errors import (
    ComputationError,
    InvalidTrialCount,
    NoPopulationLoaded,
    SimulationCancelled,
)
from ripple_model.metrics import empirical_interval, gini, income_bracket
from ripple_model.model.policy_transform import draw_elasticities, transform

logger = logging.getLogger(__name__)

# summary key -> TrialResult attribute
SUMMARY_METRICS: Dict[str, str] = {
    "income": "mean_income",
    "disposable_income": "mean_disposable_income",
    "gini": "gini",
    "employment": "employment_rate",
    "rent": "mean_rent",
    "rent_paid": "mean_rent_paid",
    "rent_burden": "mean_rent_burden",
    "emissions": "mean_commute_emissions",
    "energy_use": "mean_energy_use",
}

# brackets follow pre-policy income; sectors follow the post-shift sector
EQUITY_DIMENSIONS: Dict[str, Callable[[TransformedPerson], str]] = {
    "race": lambda p: p.race_ethnicity,
    "county": lambda p: p.county,
    "income_bracket": lambda p: income_bracket(p.original_income),
    "sector": lambda p: p.employment_sector,
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrialResult:
    trial: int
    mean_income: float
    mean_disposable_income: float
    gini: float
    employment_rate: float
    mean_rent: float
    mean_rent_paid: float
    mean_rent_burden: float
    mean_commute_emissions: float
    mean_energy_use: float


@dataclass(frozen=True)
class MetricSummary:
    mean: float
    ci95_lower: float
    ci95_upper: float


@dataclass(frozen=True)
class GroupImpact:
    group: str
    mean_income_change: float
    baseline_income: float
    percent_change: float


@dataclass(frozen=True)
class SimulationSummary:
    """Final, read-only outcome of one completed run."""

    trials: Tuple[TrialResult, ...]
    metrics: Dict[str, MetricSummary]
    equity: Dict[str, List[GroupImpact]]
    policy: PolicySettings
    n_trials: int

    def metric(self, name: str) -> MetricSummary:
        return self.metrics[name]

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class GroupAccumulator:
    """Additive per-group ``(total income change, person count)`` totals.

    Accumulators are values: :meth:`merge` returns a new one and is
    commutative and associative.
    """

    totals: Mapping[str, Mapping[str, Tuple[float, int]]] = field(default_factory=dict)

    @classmethod
    def from_people(cls, people: Sequence[TransformedPerson]) -> "GroupAccumulator":
        totals: Dict[str, Dict[str, Tuple[float, int]]] = {}
        for dimension, key_of in EQUITY_DIMENSIONS.items():
            groups: Dict[str, Tuple[float, int]] = {}
            for person in people:
                key = key_of(person)
                total, count = groups.get(key, (0.0, 0))
                groups[key] = (total + person.income_change, count + 1)
            totals[dimension] = groups
        return cls(totals)

    def merge(self, other: "GroupAccumulator") -> "GroupAccumulator":
        merged: Dict[str, Dict[str, Tuple[float, int]]] = {}
        for dimension in set(self.totals) | set(other.totals):
            groups = dict(self.totals.get(dimension, {}))
            for key, (total, count) in other.totals.get(dimension, {}).items():
                prev_total, prev_count = groups.get(key, (0.0, 0))
                groups[key] = (prev_total + total, prev_count + count)
            merged[dimension] = groups
        return GroupAccumulator(merged)

    def mean_changes(self, dimension: str) -> Dict[str, float]:
        return {key: total / count for key, (total, count) in self.totals.get(dimension, {}).items() if count}


@dataclass(frozen=True)
class TrialBatch:
    results: Tuple[TrialResult, ...]
    accumulator: GroupAccumulator

    def merge(self, other: "TrialBatch") -> "TrialBatch":
        results = tuple(sorted(self.results + other.results, key=lambda r: r.trial))
        return TrialBatch(results, self.accumulator.merge(other.accumulator))


@dataclass(frozen=True)
class SimulationProgress:
    completed: int
    total: int

    @property
    def percent(self) -> float:
        return 100.0 * self.completed / self.total if self.total else 100.0


class SimulationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Advisory cancellation flag, checked between chunks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


# ---------------------------------------------------------------------------
# Pure building blocks
# ---------------------------------------------------------------------------


def aggregate_trial(trial_index: int, people: Sequence[TransformedPerson]) -> TrialResult:
    """Population means for one trial; non-finite values raise :class:`ComputationError`."""

    adjusted = np.array([p.adjusted_income for p in people], dtype=float)
    result = TrialResult(
        trial=trial_index + 1,
        mean_income=float(adjusted.mean()),
        mean_disposable_income=float(np.mean([p.disposable_income for p in people])),
        gini=gini(adjusted),
        employment_rate=sum(1 for p in people if p.employed) / len(people),
        mean_rent=float(np.mean([p.rent for p in people])),
        mean_rent_paid=float(np.mean([p.rent_paid for p in people])),
        mean_rent_burden=float(np.mean([p.rent_burden for p in people])),
        mean_commute_emissions=float(np.mean([p.commute_emissions for p in people])),
        mean_energy_use=float(np.mean([p.energy_use for p in people])),
    )
    bad = [name for name, value in asdict(result).items() if not math.isfinite(value)]
    if bad:
        raise ComputationError(f"non-finite trial metrics: {', '.join(bad)}", trial_index=trial_index)
    return result


def summarize_metrics(trials: Sequence[TrialResult]) -> Dict[str, MetricSummary]:
    summary: Dict[str, MetricSummary] = {}
    for name, attr in SUMMARY_METRICS.items():
        values = [getattr(t, attr) for t in trials]
        lower, upper = empirical_interval(values)
        summary[name] = MetricSummary(mean=float(np.mean(values)), ci95_lower=lower, ci95_upper=upper)
    return summary


def rank_group_impacts(
    accumulator: GroupAccumulator, baseline: BaselineMetrics
) -> Dict[str, List[GroupImpact]]:
    """Mean income change per group, ranked from largest gain to largest loss."""

    equity: Dict[str, List[GroupImpact]] = {}
    for dimension in EQUITY_DIMENSIONS:
        group_baselines = baseline.group_means(dimension)
        impacts = []
        for group, change in accumulator.mean_changes(dimension).items():
            base = group_baselines.get(group)
            if base is None:
                logger.warning("No baseline income for %s group %r – using population mean", dimension, group)
                base = baseline.mean_income
            if base == 0:
                raise ComputationError(f"zero baseline income for {dimension} group {group!r}")
            impacts.append(GroupImpact(group, change, base, change / base * 100))
        equity[dimension] = sorted(impacts, key=lambda g: g.mean_income_change, reverse=True)
    return equity


def summarize(
    batch: TrialBatch, baseline: BaselineMetrics, policy: PolicySettings
) -> SimulationSummary:
    trials = tuple(sorted(batch.results, key=lambda r: r.trial))
    return SimulationSummary(
        trials=trials,
        metrics=summarize_metrics(trials),
        equity=rank_group_impacts(batch.accumulator, baseline),
        policy=policy,
        n_trials=len(trials),
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class MonteCarloSimulator:
    """Run ``n_trials`` of the policy transform over a population."""

    def __init__(
        self,
        population: Sequence[PersonRecord],
        policy: PolicySettings,
        baseline: Optional[BaselineMetrics] = None,
        *,
        n_trials: Optional[int] = None,
        seed: Optional[int] = None,
        chunk_size: Optional[int] = None,
        config: Optional[ModelConfig] = None,
    ) -> None:
        self.config = config or default_config()
        n_trials = self.config.simulation.default_trials if n_trials is None else n_trials

        if not population:
            raise NoPopulationLoaded()
        if n_trials < 1:
            raise InvalidTrialCount(n_trials)

        self.population = list(population)
        self.policy = policy
        self.n_trials = int(n_trials)
        self.chunk_size = chunk_size or self.config.simulation.chunk_size
        if baseline is None:
            logger.warning("⚠️ Baseline metrics not available, recalculating...")
            baseline = compute_baseline(self.population, self.config)
        self.baseline = baseline

        self._root_seed = np.random.SeedSequence(seed)
        self.state = SimulationState.IDLE
        self.progress = SimulationProgress(0, self.n_trials)
        self.summary: Optional[SimulationSummary] = None

    # ------------------------------------------------------------------
    # Trial execution
    # ------------------------------------------------------------------

    @property
    def default_vehicle_owned(self) -> bool:
        """Ownership assumed for people without ownership data: a strict majority of owners."""

        return self.baseline.vehicle_ownership_rate > 0.5

    def trial_rng(self, trial_index: int) -> np.random.Generator:
        child = np.random.SeedSequence(self._root_seed.entropy, spawn_key=(trial_index,))
        return np.random.default_rng(child)

    def run_trial(self, trial_index: int) -> Tuple[TrialResult, GroupAccumulator]:
        rng = self.trial_rng(trial_index)
        elasticities = self.config.elasticities
        default_owned = self.default_vehicle_owned
        try:
            draw = draw_elasticities(rng, self.policy, elasticities)
            people = [
                transform(
                    person,
                    self.policy,
                    draw,
                    rng,
                    default_vehicle_owned=default_owned,
                    elasticities=elasticities,
                )
                for person in self.population
            ]
        except (ArithmeticError, ValueError) as exc:
            raise ComputationError(str(exc), trial_index=trial_index) from exc
        return aggregate_trial(trial_index, people), GroupAccumulator.from_people(people)

    def run_trials(self, start: int, stop: int) -> TrialBatch:
        """Run trials ``start .. stop-1``; independent of any other batch."""

        results: List[TrialResult] = []
        accumulator = GroupAccumulator()
        for index in range(start, stop):
            result, groups = self.run_trial(index)
            results.append(result)
            accumulator = accumulator.merge(groups)
        return TrialBatch(tuple(results), accumulator)

    # ------------------------------------------------------------------
    # Chunked driver
    # ------------------------------------------------------------------

    def iter_chunks(self, cancel_token: Optional[CancellationToken] = None) -> Iterator[SimulationProgress]:
        """Run the simulation chunk by chunk, yielding progress after each chunk.

        On completion :attr:`summary` holds the result.  If ``cancel_token`` is
        cancelled, the generator stops, state becomes ``CANCELLED`` and all
        trials run so far are discarded.
        """

        self.state = SimulationState.RUNNING
        self.summary = None
        self.progress = SimulationProgress(0, self.n_trials)
        logger.info("🎲 Running %d trials over %d people", self.n_trials, len(self.population))

        batch = TrialBatch((), GroupAccumulator())
        try:
            for start in range(0, self.n_trials, self.chunk_size):
                if cancel_token is not None and cancel_token.cancelled:
                    self._cancel()
                    return
                stop = min(start + self.chunk_size, self.n_trials)
                batch = batch.merge(self.run_trials(start, stop))
                self.progress = SimulationProgress(stop, self.n_trials)
                yield self.progress

            if cancel_token is not None and cancel_token.cancelled:
                self._cancel()
                return

            self.state = SimulationState.AGGREGATING
            summary = summarize(batch, self.baseline, self.policy)
        except Exception as exc:
            self.state = SimulationState.FAILED
            logger.error("❌ Simulation failed after %d/%d trials: %s", self.progress.completed, self.n_trials, exc)
            raise

        self.summary = summary
        self.state = SimulationState.COMPLETE
        logger.info(
            "✅ Simulation complete: mean income %.0f, Gini %.3f",
            summary.metrics["income"].mean,
            summary.metrics["gini"].mean,
        )

    def _cancel(self) -> None:
        self.state = SimulationState.CANCELLED
        logger.info("Simulation cancelled after %d/%d trials; results discarded", self.progress.completed, self.n_trials)

    def run(
        self,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[Callable[[SimulationProgress], None]] = None,
    ) -> SimulationSummary:
        """Run every chunk to completion and return the summary."""

        for progress in self.iter_chunks(cancel_token):
            if progress_callback is not None:
                progress_callback(progress)
        if self.state is SimulationState.CANCELLED or self.summary is None:
            raise SimulationCancelled("Simulation was cancelled before completion")
        return self.summary


def run_simulation(
    population: Sequence[PersonRecord],
    policy: PolicySettings,
    baseline: Optional[BaselineMetrics] = None,
    *,
    n_trials: Optional[int] = None,
    seed: Optional[int] = None,
    config: Optional[ModelConfig] = None,
) -> SimulationSummary:
    """Convenience wrapper: build a simulator and run it in one pass."""

    simulator = MonteCarloSimulator(
        population, policy, baseline, n_trials=n_trials, seed=seed, config=config
    )
    return simulator.run()


__all__ = [
    "TrialResult",
    "MetricSummary",
    "GroupImpact",
    "SimulationSummary",
    "GroupAccumulator",
    "TrialBatch",
    "SimulationProgress",
    "SimulationState",
    "CancellationToken",
    "MonteCarloSimulator",
    "aggregate_trial",
    "summarize_metrics",
    "rank_group_impacts",
    "summarize",
    "run_simulation",
    "SUMMARY_METRICS",
    "EQUITY_DIMENSIONS",
]
