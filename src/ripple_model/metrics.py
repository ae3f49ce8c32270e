"""Pure statistical helpers shared by the baseline and per-trial aggregation."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

# Annual commuting days, also the annualisation constant of the carbon tax
COMMUTE_DAYS_PER_YEAR = 250

# kg CO2 per mile by commute mode; unknown modes are treated as driving
EMISSION_FACTORS: Dict[str, float] = {
    "drive": 0.4,
    "car": 0.4,
    "transit": 0.15,
    "public_transit": 0.15,
    "bike": 0.0,
    "walk": 0.0,
    "ev": 0.1,
}
DEFAULT_EMISSION_FACTOR = 0.4

INCOME_BRACKETS: Tuple[str, ...] = (
    "Under $25k",
    "$25k-$50k",
    "$50k-$75k",
    "$75k-$100k",
    "Over $100k",
)
_BRACKET_UPPER_BOUNDS = (25_000, 50_000, 75_000, 100_000)


def gini(incomes: Iterable[float]) -> float:
    """Gini coefficient via the rank formula ``Σ(2i − n − 1)·x_i / (n·Σx)``.

    Returns 0.0 for an empty population or when total income is zero.
    """

    values = np.sort(np.asarray(list(incomes), dtype=float))
    n = values.size
    total = values.sum()
    if n == 0 or total == 0:
        return 0.0
    ranks = np.arange(1, n + 1)
    return float(np.sum((2 * ranks - n - 1) * values) / (n * total))


def income_bracket(income: float) -> str:
    """Map an annual income onto one of the five fixed brackets (upper bound exclusive)."""

    for label, upper in zip(INCOME_BRACKETS, _BRACKET_UPPER_BOUNDS):
        if income < upper:
            return label
    return INCOME_BRACKETS[-1]


def emission_factor(mode: str) -> float:
    return EMISSION_FACTORS.get(mode, DEFAULT_EMISSION_FACTOR)


def commute_emissions(distance: float, mode: str) -> float:
    """Annual commute emissions: ``distance × factor(mode) × 250``."""

    return distance * emission_factor(mode) * COMMUTE_DAYS_PER_YEAR


def distribution(
    records: Iterable[Any], *fields: str, default: str = "Unknown"
) -> List[Tuple[str, int]]:
    """Count categories, taking the first non-empty attribute among ``fields``.

    Records may be mappings or objects. The result is ordered by first
    appearance of each category.
    """

    counts: Dict[str, int] = {}
    for record in records:
        value = default
        for name in fields:
            raw = record.get(name) if isinstance(record, Mapping) else getattr(record, name, None)
            if raw:
                value = str(raw)
                break
        counts[value] = counts.get(value, 0) + 1
    return list(counts.items())


def bracket_distribution(incomes: Iterable[float]) -> List[Tuple[str, int]]:
    """Counts per income bracket, in bracket order, including empty brackets."""

    counts = {label: 0 for label in INCOME_BRACKETS}
    for income in incomes:
        counts[income_bracket(income)] += 1
    return list(counts.items())


def empirical_interval(values: Sequence[float], lower: float = 0.025, upper: float = 0.975) -> Tuple[float, float]:
    """Order-statistic interval: ``sorted[floor(N·lower)]`` .. ``sorted[floor(N·upper)]``."""

    ordered = np.sort(np.asarray(values, dtype=float))
    n = ordered.size
    if n == 0:
        raise ValueError("empirical_interval requires at least one value")
    lo = min(int(np.floor(n * lower)), n - 1)
    hi = min(int(np.floor(n * upper)), n - 1)
    return float(ordered[lo]), float(ordered[hi])


__all__ = [
    "COMMUTE_DAYS_PER_YEAR",
    "EMISSION_FACTORS",
    "INCOME_BRACKETS",
    "gini",
    "income_bracket",
    "emission_factor",
    "commute_emissions",
    "distribution",
    "bracket_distribution",
    "empirical_interval",
]
