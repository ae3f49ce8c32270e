"""Runtime configuration for the simulator.

Behavioural calibration comes from ``data/elasticities.yaml`` shipped with the
package; a user YAML file may override any key.  Everything is validated into
pydantic models so downstream code can rely on attribute access.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import logging
import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_ELASTICITIES_PATH = Path(__file__).resolve().parent / "data" / "elasticities.yaml"

REQUIRED_ELASTICITY_KEYS = (
    "wage_elasticity",
    "rent_elasticity",
    "employment_elasticity",
    "education_effectiveness",
    "reference_min_wage",
    "full_time_hours",
    "sector_shift",
    "transit_shift",
    "ev_adoption",
    "baseline_tax_rate",
    "vehicle_ownership_fallback",
)


class ProbabilityCurve(BaseModel):
    """``base + lever / scale * slope`` when the lever is positive, else 0."""

    base: float
    scale: float = Field(gt=0)
    slope: float

    def probability(self, lever: float) -> float:
        if lever <= 0:
            return 0.0
        return self.base + (lever / self.scale) * self.slope


class ElasticityConfig(BaseModel):
    wage_elasticity: Tuple[float, float]
    rent_elasticity: Tuple[float, float]
    employment_elasticity: Tuple[float, float]
    education_effectiveness: Tuple[float, float]
    reference_min_wage: float = Field(gt=0)
    full_time_hours: float = Field(gt=0)
    sector_shift: ProbabilityCurve
    transit_shift: ProbabilityCurve
    ev_adoption: ProbabilityCurve
    baseline_tax_rate: float = Field(ge=0.0, le=1.0)
    vehicle_ownership_fallback: float = Field(ge=0.0, le=1.0)


class InsightConfig(BaseModel):
    api_url: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.0-flash:generateContent"
    )
    api_key_env: str = "GEMINI_API_KEY"
    timeout_sec: float = Field(20.0, gt=0)
    temperature: float = 0.7
    max_workers: int = Field(3, ge=1)


class SimulationConfig(BaseModel):
    chunk_size: int = Field(10, ge=1)
    default_trials: int = Field(100, ge=1)


class ModelConfig(BaseModel):
    elasticities: ElasticityConfig
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    insights: InsightConfig = Field(default_factory=InsightConfig)


def load_elasticities(path: Optional[Path] = None) -> Dict[str, Any]:
    """Return the raw elasticities mapping, checking that all keys are present."""

    path = Path(path) if path is not None else DEFAULT_ELASTICITIES_PATH
    if not path.exists():
        raise FileNotFoundError("Elasticities file not found at " + str(path))

    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    missing = [k for k in REQUIRED_ELASTICITY_KEYS if k not in data]
    if missing:
        raise KeyError("Missing required elasticities: " + ", ".join(missing))
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None) -> ModelConfig:
    """Build a :class:`ModelConfig` from packaged defaults plus an optional YAML file.

    The override file may contain ``elasticities``, ``simulation`` and
    ``insights`` sections; anything omitted keeps its default.
    """

    raw: Dict[str, Any] = {"elasticities": load_elasticities()}
    if path is not None:
        path = Path(path)
        with path.open("r", encoding="utf-8") as fh:
            overrides = yaml.safe_load(fh) or {}
        raw = _deep_merge(raw, overrides)
        logger.info("Loaded configuration overrides from %s", path)
    return ModelConfig(**raw)


_DEFAULT_CONFIG: Optional[ModelConfig] = None


def default_config() -> ModelConfig:
    """Packaged configuration, parsed once."""

    global _DEFAULT_CONFIG
    if _DEFAULT_CONFIG is None:
        _DEFAULT_CONFIG = load_config()
    return _DEFAULT_CONFIG


__all__ = [
    "ModelConfig",
    "ElasticityConfig",
    "InsightConfig",
    "SimulationConfig",
    "ProbabilityCurve",
    "load_config",
    "load_elasticities",
    "default_config",
]
