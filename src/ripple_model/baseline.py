"""
Baseline calculator
===================

Derives the pre-policy snapshot of a population: aggregate economic
indicators, behavioural indicators, demographic distributions and – crucially
for the equity analysis – mean income per race, county, sector and income
bracket.  Group-level means are what percentage changes are later normalised
against; a single global mean would misstate group-specific effects.

The computation is deterministic and side-effect free.  Ownership of the
resulting snapshot (and invalidation of any summary computed against an older
one) belongs to :class:`ripple_model.orchestration.session.SimulationSession`.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ripple_model.config import ModelConfig, default_config
from ripple_model.entities import PersonRecord
from ripple_model.errors import EmptyPopulation
from ripple_model.metrics import (
    bracket_distribution,
    commute_emissions,
    distribution,
    gini,
    income_bracket,
)

logger = logging.getLogger(__name__)

POVERTY_LINE = 25_000.0

Distribution = List[Tuple[str, int]]


@dataclass(frozen=True)
class BaselineMetrics:
    """Immutable pre-policy snapshot of one population."""

    # Economic
    mean_income: float
    median_income: float
    mean_disposable_income: float
    gini_coefficient: float
    employment_rate: float
    poverty_rate: float
    mean_rent: float
    mean_rent_paid: float
    mean_rent_burden: float

    # Behavioural
    commute_mode_distribution: Distribution
    vehicle_ownership_rate: float
    vehicle_data_available: bool
    mean_commute_emissions: float
    mean_energy_use: float

    # Demographic
    mean_household_size: float
    education_distribution: Distribution
    income_bracket_distribution: Distribution
    sector_distribution: Distribution
    race_distribution: Distribution
    county_distribution: Distribution

    # Environmental
    total_co2_emissions: float
    co2_per_capita: float

    # Group-specific baseline incomes
    mean_income_by_race: Dict[str, float] = field(default_factory=dict)
    mean_income_by_county: Dict[str, float] = field(default_factory=dict)
    mean_income_by_sector: Dict[str, float] = field(default_factory=dict)
    mean_income_by_bracket: Dict[str, float] = field(default_factory=dict)

    total_population: int = 0

    def group_means(self, dimension: str) -> Dict[str, float]:
        """Baseline mean income per group for ``race``, ``county``, ``sector`` or ``income_bracket``."""

        return {
            "race": self.mean_income_by_race,
            "county": self.mean_income_by_county,
            "sector": self.mean_income_by_sector,
            "income_bracket": self.mean_income_by_bracket,
        }[dimension]

    def to_dict(self) -> Dict:
        return asdict(self)


def vehicle_ownership_rate(records: Sequence[PersonRecord], fallback: float) -> Tuple[float, bool]:
    """Share of owners among people with ownership data.

    Returns ``(rate, data_available)``.  When nobody carries ownership data the
    documented fallback rate is used instead of 0.
    """

    known = [r.vehicle_owned for r in records if r.vehicle_owned is not None]
    if not known:
        logger.info("No vehicle ownership data found – using %.0f%% default", fallback * 100)
        return fallback, False
    return sum(1 for owned in known if owned) / len(known), True


def _group_mean(frame: pd.DataFrame, key: str) -> Dict[str, float]:
    return {str(k): float(v) for k, v in frame.groupby(key, sort=False)["income"].mean().items()}


def compute_baseline(
    records: Sequence[PersonRecord],
    config: Optional[ModelConfig] = None,
) -> BaselineMetrics:
    """Compute :class:`BaselineMetrics` for a non-empty population."""

    if not records:
        raise EmptyPopulation()

    cfg = config or default_config()
    elasticities = cfg.elasticities

    frame = pd.DataFrame(
        {
            "income": [r.income for r in records],
            "rent": [r.rent for r in records],
            "rent_paid": [r.effective_rent_paid for r in records],
            "employed": [r.employed for r in records],
            "energy_use": [r.energy_use for r in records],
            "household_size": [r.household_size for r in records],
            "race": [r.race_ethnicity for r in records],
            "county": [r.county for r in records],
            "sector": [r.employment_sector for r in records],
            "emissions": [commute_emissions(r.commute_distance, r.commute_mode) for r in records],
        }
    )
    frame["income_bracket"] = frame["income"].map(income_bracket)

    incomes = frame["income"].to_numpy(dtype=float)
    # Rent burden is undefined for zero income; those people are left out of the mean
    positive = incomes > 0
    if positive.any():
        burdens = frame["rent"].to_numpy(dtype=float)[positive] * 12 / incomes[positive]
        mean_rent_burden = float(burdens.mean())
    else:
        mean_rent_burden = 0.0

    ownership_rate, ownership_known = vehicle_ownership_rate(records, elasticities.vehicle_ownership_fallback)

    bracket_means = _group_mean(frame, "income_bracket")
    total_co2 = float(frame["emissions"].sum())
    n = len(records)

    baseline = BaselineMetrics(
        mean_income=float(incomes.mean()),
        # upper median, matching the ``sorted[n // 2]`` convention used for display
        median_income=float(np.sort(incomes)[n // 2]),
        mean_disposable_income=float((incomes * (1 - elasticities.baseline_tax_rate)).mean()),
        gini_coefficient=gini(incomes),
        employment_rate=float(frame["employed"].mean()),
        poverty_rate=float((incomes < POVERTY_LINE).mean()),
        mean_rent=float(frame["rent"].mean()),
        mean_rent_paid=float(frame["rent_paid"].mean()),
        mean_rent_burden=mean_rent_burden,
        commute_mode_distribution=distribution(records, "commute_mode"),
        vehicle_ownership_rate=ownership_rate,
        vehicle_data_available=ownership_known,
        mean_commute_emissions=float(frame["emissions"].mean()),
        mean_energy_use=float(frame["energy_use"].mean()),
        mean_household_size=float(frame["household_size"].mean()),
        education_distribution=distribution(records, "education_level"),
        income_bracket_distribution=bracket_distribution(incomes),
        sector_distribution=distribution(records, "employment_sector"),
        race_distribution=distribution(records, "race_ethnicity"),
        county_distribution=distribution(records, "county"),
        total_co2_emissions=total_co2,
        co2_per_capita=total_co2 / n,
        mean_income_by_race=_group_mean(frame, "race"),
        mean_income_by_county=_group_mean(frame, "county"),
        mean_income_by_sector=_group_mean(frame, "sector"),
        mean_income_by_bracket=bracket_means,
        total_population=n,
    )

    logger.info(
        "✅ Baseline computed for %d people: mean income %.0f, Gini %.3f, employment %.1f%%",
        n,
        baseline.mean_income,
        baseline.gini_coefficient,
        baseline.employment_rate * 100,
    )
    return baseline


__all__ = ["BaselineMetrics", "compute_baseline", "vehicle_ownership_rate", "POVERTY_LINE"]
