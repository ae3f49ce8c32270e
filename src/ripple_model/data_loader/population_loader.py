"""
Population loader – spreadsheet rows to canonical person records
================================================================

Synthetic population files arrive from many tools with inconsistent column
naming (``Income`` vs ``income``, ``Race`` vs ``Race_Ethnicity``, half a dozen
spellings of vehicle ownership).  This module resolves every semantic field
against an explicit, ordered list of accepted synonyms **once**, producing
:class:`~ripple_model.entities.PersonRecord` objects.  Nothing downstream ever
looks at a raw column name again.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Dict, List, Optional, Union

import pandas as pd

from ripple_model.entities import PersonRecord
from ripple_model.errors import EmptyPopulation, UnreadablePopulationFile

logger = logging.getLogger(__name__)

# Ordered synonyms per semantic field, matched case-insensitively.
FIELD_ALIASES: Dict[str, List[str]] = {
    "income": ["income", "annual_income"],
    "rent": ["rent", "monthly_rent"],
    "employed": ["employed", "employment_status"],
    "commute_mode": ["commute_mode", "commutemode", "transport_mode"],
    "commute_distance": ["commute_distance", "commutedistance"],
    "vehicle_owned": [
        "vehicle_own",
        "vehicle_ownership",
        "vehic_own",
        "vehicleownership",
        "own_vehicle",
        "car_ownership",
        "has_vehicle",
        "owns_car",
    ],
    "education_level": ["education_level", "education"],
    "employment_sector": ["employment_sector", "sector"],
    "household_size": ["household_size", "householdsize"],
    "race_ethnicity": ["race_ethnicity", "race", "ethnicity"],
    "county": ["county"],
    "rent_paid": ["rent_paid", "rentpaid"],
    "energy_use": ["energy_use", "energyuse"],
}

_EXCEL_SUFFIXES = {".xlsx", ".xlsm"}

PopulationSource = Union[str, Path, IO[bytes]]


def _clean_column(name: object) -> str:
    return str(name).strip().lstrip("\ufeff").lower()


def resolve_columns(columns: List[object]) -> Dict[str, object]:
    """Return ``semantic field -> original column`` for every field found."""

    lookup: Dict[str, object] = {}
    for col in columns:
        lookup.setdefault(_clean_column(col), col)

    resolved: Dict[str, object] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            if alias in lookup:
                resolved[field_name] = lookup[alias]
                break
    return resolved


def read_population_frame(source: PopulationSource, filename: Optional[str] = None) -> pd.DataFrame:
    """Read the first sheet of an Excel workbook, or a CSV file, into a DataFrame.

    ``filename`` is only used to pick the format when ``source`` is a stream.
    """

    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    suffix = Path(name).suffix.lower()

    try:
        if suffix in _EXCEL_SUFFIXES:
            sheets = pd.read_excel(source, sheet_name=None, engine="openpyxl")
            if not sheets:
                raise EmptyPopulation("No sheets found in Excel file")
            frame = next(iter(sheets.values()))
        elif suffix == ".csv":
            frame = pd.read_csv(source)
        else:
            raise UnreadablePopulationFile(f"Unsupported population file format: {name or '<stream>'}")
    except (EmptyPopulation, UnreadablePopulationFile):
        raise
    except pd.errors.EmptyDataError as exc:
        raise EmptyPopulation("Population file has no data rows") from exc
    except Exception as exc:
        raise UnreadablePopulationFile(f"Failed to read population file: {exc}") from exc

    frame = frame.dropna(how="all")
    if frame.empty:
        raise EmptyPopulation("Population file is empty or has no data rows")

    logger.info("Read population file %s: %d rows, columns=%s", name or "<stream>", len(frame), list(frame.columns))
    return frame


def records_from_frame(frame: pd.DataFrame) -> List[PersonRecord]:
    """Convert a raw population DataFrame into canonical records."""

    if frame is None or frame.empty:
        raise EmptyPopulation()

    columns = resolve_columns(list(frame.columns))
    unmatched = [f for f in FIELD_ALIASES if f not in columns]
    if unmatched:
        logger.info("Population columns not found, defaults apply: %s", ", ".join(unmatched))

    if not columns:
        return [PersonRecord.from_mapping({}) for _ in range(len(frame))]

    renamed = frame[list(columns.values())].copy()
    renamed.columns = list(columns.keys())
    # object dtype keeps None/NaN distinguishable from genuine zeros
    rows = renamed.astype(object).to_dict(orient="records")
    return [PersonRecord.from_mapping(row) for row in rows]


def load_population(source: PopulationSource, filename: Optional[str] = None) -> List[PersonRecord]:
    """Read and canonicalise a population file in one step."""

    return records_from_frame(read_population_frame(source, filename))


__all__ = [
    "FIELD_ALIASES",
    "resolve_columns",
    "read_population_frame",
    "records_from_frame",
    "load_population",
]
