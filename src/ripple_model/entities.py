"""Canonical person and policy records used throughout the simulator.

Raw population rows are resolved into :class:`PersonRecord` once, at ingestion.
The core never sees spreadsheet column names; it only sees these fields with
their documented defaults applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

# Defaults for semantic fields that are absent or blank in the input
DEFAULT_INCOME = 30_000.0           # currency / year
DEFAULT_RENT = 1_200.0              # currency / month
DEFAULT_COMMUTE_MODE = "drive"
DEFAULT_COMMUTE_DISTANCE = 10.0     # miles / day
DEFAULT_EDUCATION = "High School"
DEFAULT_SECTOR = "Retail"
DEFAULT_HOUSEHOLD_SIZE = 2
DEFAULT_RACE = "Unknown"
DEFAULT_COUNTY = "Unknown"
DEFAULT_ENERGY_USE = 100.0          # kWh / month

_TRUE_STRINGS = {"yes", "y", "1", "true", "t"}
_FALSE_STRINGS = {"no", "n", "0", "false", "f"}


def is_missing(value: Any) -> bool:
    """Return True for None, NaN and blank strings."""

    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def as_float(value: Any, default: float) -> float:
    if is_missing(value):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def as_int(value: Any, default: int) -> int:
    if is_missing(value):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def as_text(value: Any, default: str) -> str:
    if is_missing(value):
        return default
    return str(value).strip()


def as_bool(value: Any) -> Optional[bool]:
    """Parse yes/no style flags. Unrecognised or missing values give None."""

    if is_missing(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


def normalize_commute_mode(value: Any) -> str:
    """Lower-case the mode and fold spaces/hyphens, e.g. 'Public Transit' -> 'public_transit'."""

    text = as_text(value, DEFAULT_COMMUTE_MODE).lower()
    return text.replace("-", "_").replace(" ", "_")


@dataclass(frozen=True)
class PersonRecord:
    """One member of the synthetic population."""

    income: float = DEFAULT_INCOME
    rent: float = DEFAULT_RENT
    employed: bool = True
    commute_mode: str = DEFAULT_COMMUTE_MODE
    commute_distance: float = DEFAULT_COMMUTE_DISTANCE
    vehicle_owned: Optional[bool] = None      # None = no ownership information
    education_level: str = DEFAULT_EDUCATION
    employment_sector: str = DEFAULT_SECTOR
    household_size: int = DEFAULT_HOUSEHOLD_SIZE
    race_ethnicity: str = DEFAULT_RACE
    county: str = DEFAULT_COUNTY
    rent_paid: Optional[float] = None
    energy_use: float = DEFAULT_ENERGY_USE

    @property
    def effective_rent_paid(self) -> float:
        return self.rent if self.rent_paid is None else self.rent_paid

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PersonRecord":
        """Build a record from a ``semantic field -> raw value`` mapping."""

        employed = as_bool(values.get("employed"))
        rent_paid = values.get("rent_paid")
        return cls(
            income=as_float(values.get("income"), DEFAULT_INCOME),
            rent=as_float(values.get("rent"), DEFAULT_RENT),
            employed=True if employed is None else employed,
            commute_mode=normalize_commute_mode(values.get("commute_mode")),
            commute_distance=as_float(values.get("commute_distance"), DEFAULT_COMMUTE_DISTANCE),
            vehicle_owned=as_bool(values.get("vehicle_owned")),
            education_level=as_text(values.get("education_level"), DEFAULT_EDUCATION),
            employment_sector=as_text(values.get("employment_sector"), DEFAULT_SECTOR),
            household_size=as_int(values.get("household_size"), DEFAULT_HOUSEHOLD_SIZE),
            race_ethnicity=as_text(values.get("race_ethnicity"), DEFAULT_RACE),
            county=as_text(values.get("county"), DEFAULT_COUNTY),
            rent_paid=None if is_missing(rent_paid) else as_float(rent_paid, DEFAULT_RENT),
            energy_use=as_float(values.get("energy_use"), DEFAULT_ENERGY_USE),
        )


@dataclass(frozen=True)
class PolicySettings:
    """Policy levers for one simulation run.

    Values are trusted: range enforcement belongs to the caller (see
    :mod:`ripple_model.api.policy_settings_schema`).
    """

    min_wage: float = 15.0               # currency / hour
    carbon_tax: float = 0.0              # currency per mile-year
    housing_subsidy: float = 0.0         # currency / month
    tax_rate: float = 0.22               # fraction
    education_subsidy: float = 0.0       # currency / year
    transit_subsidy: float = 0.0         # currency / year
    ev_incentive: float = 0.0            # currency, one-time
    green_jobs_incentive: float = 0.0    # percent

    def replace(self, **changes: Any) -> "PolicySettings":
        return replace(self, **changes)


@dataclass(frozen=True)
class TransformedPerson:
    """A person after the policy pipeline has been applied."""

    original_income: float
    income: float                 # pre-tax income after wage/education/sector/employment effects
    adjusted_income: float        # income net of the annualised carbon cost
    disposable_income: float      # after income tax and carbon cost
    income_change: float          # adjusted_income - original_income
    rent: float
    rent_burden: float
    employed: bool
    commute_mode: str
    commute_distance: float
    commute_emissions: float
    vehicle_owned: bool
    education_level: str
    employment_sector: str
    original_sector: str
    household_size: int
    race_ethnicity: str
    county: str
    energy_use: float
    events: tuple = field(default_factory=tuple)

    @property
    def rent_paid(self) -> float:
        return self.rent


__all__ = [
    "PersonRecord",
    "PolicySettings",
    "TransformedPerson",
    "is_missing",
    "as_bool",
    "as_float",
    "as_int",
    "as_text",
    "normalize_commute_mode",
]
