"""Pydantic request models shared across HTTP and MCP entry points.

The simulation core trusts its inputs; the documented slider ranges are
enforced here, at the caller boundary.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ripple_model.entities import PolicySettings

DEFAULT_POLICY = PolicySettings()

# name -> (min, max, step, default, description)
PARAMETER_BOUNDS: Dict[str, tuple] = {
    "min_wage": (10.0, 25.0, 0.5, DEFAULT_POLICY.min_wage, "Minimum wage ($/hour)"),
    "carbon_tax": (0.0, 100.0, 5.0, DEFAULT_POLICY.carbon_tax, "Carbon tax ($ per mile-year)"),
    "housing_subsidy": (0.0, 500.0, 25.0, DEFAULT_POLICY.housing_subsidy, "Housing subsidy ($/month)"),
    "tax_rate": (0.10, 0.40, 0.01, DEFAULT_POLICY.tax_rate, "Income tax rate (fraction)"),
    "education_subsidy": (0.0, 2000.0, 100.0, DEFAULT_POLICY.education_subsidy, "Education subsidy ($/year)"),
    "transit_subsidy": (0.0, 1000.0, 50.0, DEFAULT_POLICY.transit_subsidy, "Transit subsidy ($/year)"),
    "ev_incentive": (0.0, 10000.0, 500.0, DEFAULT_POLICY.ev_incentive, "EV incentive ($, one-time)"),
    "green_jobs_incentive": (0.0, 20.0, 1.0, DEFAULT_POLICY.green_jobs_incentive, "Green jobs incentive (%)"),
    "n_trials": (50, 500, 50, 100, "Monte Carlo trials"),
}


def _field(name: str):
    low, high, _step, default, description = PARAMETER_BOUNDS[name]
    return Field(default, ge=low, le=high, description=description)


class PolicySettingsModel(BaseModel):
    min_wage: float = _field("min_wage")
    carbon_tax: float = _field("carbon_tax")
    housing_subsidy: float = _field("housing_subsidy")
    tax_rate: float = _field("tax_rate")
    education_subsidy: float = _field("education_subsidy")
    transit_subsidy: float = _field("transit_subsidy")
    ev_incentive: float = _field("ev_incentive")
    green_jobs_incentive: float = _field("green_jobs_incentive")

    def to_settings(self) -> PolicySettings:
        return PolicySettings(**self.model_dump())


class SimulationRequest(BaseModel):
    policy: PolicySettingsModel = Field(default_factory=PolicySettingsModel)
    n_trials: int = _field("n_trials")
    seed: Optional[int] = None


def parameter_bounds() -> Dict[str, Dict[str, Any]]:
    return {
        name: {"min": low, "max": high, "step": step, "default": default, "description": description}
        for name, (low, high, step, default, description) in PARAMETER_BOUNDS.items()
    }


__all__ = [
    "PolicySettingsModel",
    "SimulationRequest",
    "PARAMETER_BOUNDS",
    "parameter_bounds",
]
