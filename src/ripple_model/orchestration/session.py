"""Session state for one interactive user: population, baseline and summary.

The session is the single writer of the two snapshots.  Both are replaced
wholesale, never mutated:

* loading a population recomputes the baseline, drops the previous summary
  (it was computed against a different baseline) and cancels any run still in
  flight;
* a simulation publishes its summary only if it completes for the population
  that is still current.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Sequence

from ripple_model.baseline import BaselineMetrics, compute_baseline
from ripple_model.config import ModelConfig, default_config
from ripple_model.data_loader.population_loader import PopulationSource, load_population
from ripple_model.entities import PersonRecord, PolicySettings
from ripple_model.errors import (
    EmptyPopulation,
    NoPopulationLoaded,
    RippleError,
    SimulationCancelled,
    StaleBaseline,
)
from ripple_model.insights.collaborator import InsightCollaborator, InsightKind
from ripple_model.model.simulation import (
    CancellationToken,
    MonteCarloSimulator,
    SimulationProgress,
    SimulationState,
    SimulationSummary,
)

logger = logging.getLogger(__name__)


class SimulationSession:
    """Owns the snapshots of one session and coordinates runs against them."""

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        insights: Optional[InsightCollaborator] = None,
    ) -> None:
        self.config = config or default_config()
        self.insights = insights or InsightCollaborator(config=self.config.insights)
        self.population: Optional[Sequence[PersonRecord]] = None
        self.baseline: Optional[BaselineMetrics] = None
        self.summary: Optional[SimulationSummary] = None
        self.last_policy: Optional[PolicySettings] = None

        self._lock = threading.Lock()
        self._generation = 0
        self._active_token: Optional[CancellationToken] = None
        self._active_simulator: Optional[MonteCarloSimulator] = None

    # ------------------------------------------------------------------
    # Population / baseline
    # ------------------------------------------------------------------

    def load_population(self, records: Sequence[PersonRecord]) -> BaselineMetrics:
        """Replace the population and its baseline; invalidates any summary."""

        if not records:
            raise EmptyPopulation()
        baseline = compute_baseline(records, self.config)
        with self._lock:
            self._generation += 1
            if self._active_token is not None:
                self._active_token.cancel()
            self.population = list(records)
            self.baseline = baseline
            self.summary = None
            self.last_policy = None
        logger.info("📁 Population loaded: %d people", len(records))
        return baseline

    def load_population_file(self, source: PopulationSource, filename: Optional[str] = None) -> BaselineMetrics:
        return self.load_population(load_population(source, filename))

    def ensure_baseline(self) -> BaselineMetrics:
        """Return the baseline, recomputing it once if it is missing."""

        if not self.population:
            raise NoPopulationLoaded()
        if self.baseline is None:
            logger.warning("⚠️ Baseline metrics not available, recalculating...")
            try:
                baseline = compute_baseline(self.population, self.config)
            except RippleError as exc:
                raise StaleBaseline(f"Baseline could not be recomputed: {exc}") from exc
            with self._lock:
                self.baseline = baseline
        return self.baseline

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    @property
    def progress(self) -> Optional[SimulationProgress]:
        simulator = self._active_simulator
        return None if simulator is None else simulator.progress

    @property
    def state(self) -> SimulationState:
        simulator = self._active_simulator
        return SimulationState.IDLE if simulator is None else simulator.state

    def cancel(self) -> None:
        with self._lock:
            if self._active_token is not None:
                self._active_token.cancel()

    def simulate(
        self,
        policy: PolicySettings,
        n_trials: Optional[int] = None,
        *,
        seed: Optional[int] = None,
        progress_callback: Optional[Callable[[SimulationProgress], None]] = None,
    ) -> SimulationSummary:
        """Run a full Monte Carlo simulation and publish its summary.

        A run started while another is in flight cancels the earlier one.
        """

        baseline = self.ensure_baseline()
        token = CancellationToken()
        with self._lock:
            if self._active_token is not None:
                self._active_token.cancel()
            generation = self._generation
            population = self.population
            simulator = MonteCarloSimulator(
                population,
                policy,
                baseline,
                n_trials=n_trials,
                seed=seed,
                config=self.config,
            )
            self._active_token = token
            self._active_simulator = simulator

        summary = simulator.run(token, progress_callback)

        with self._lock:
            if token.cancelled or generation != self._generation:
                raise SimulationCancelled("Population changed while the simulation was running")
            self.summary = summary
            self.last_policy = policy
            if self._active_token is token:
                self._active_token = None
        return summary

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def generate_insights(self) -> Dict[InsightKind, str]:
        """Narrative summaries for the current summary (falls back offline)."""

        if self.summary is None or self.baseline is None or self.last_policy is None:
            raise StaleBaseline("No current simulation summary to describe")
        return self.insights.summarize_all(self.summary, self.baseline, self.last_policy)


__all__ = ["SimulationSession"]
