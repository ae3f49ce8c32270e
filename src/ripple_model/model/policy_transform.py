"""
Policy transform – the per-person economic model
================================================

:func:`transform` maps one :class:`PersonRecord` through an ordered pipeline
of policy effects.  Order matters: each step consumes the output of the
previous ones.

1.  Minimum wage lifts incomes below the full-time minimum-wage income.
2.  Education subsidy may promote High School -> Some College -> Bachelor.
3.  Green-jobs incentive may move the person into Green Energy or Tech.
4.  Wage pass-through raises rents.
5.  Housing subsidy lowers rent for incomes under 50k.
6.  Employment shock may cost the job (income kept at 30%).
7.  Income tax gives disposable income.
8.  Transit subsidy may move drivers onto transit.
9.  EV incentive may move remaining drivers into an EV.
10. Carbon tax is charged on the commute distance.
11. Energy use responds to income, household size, EV charging and green work.
12. Commute emissions and rent burden are recomputed.

The elasticities in :class:`ElasticityDraw` are drawn once per trial and
shared by everybody in it; only the Bernoulli events are drawn per person, from
the generator passed in.  Input values are not validated here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ripple_model.config import ElasticityConfig, default_config
from ripple_model.entities import PersonRecord, PolicySettings, TransformedPerson
from ripple_model.metrics import COMMUTE_DAYS_PER_YEAR, DEFAULT_EMISSION_FACTOR, commute_emissions

DRIVING_MODES = frozenset({"drive", "car"})

EDUCATION_PROMOTIONS = {
    "High School": ("Some College", 1.15),
    "Some College": ("Bachelor", 1.25),
}
GREEN_SECTORS = ("Green Energy", "Tech")
SECTOR_SHIFT_INCOME_MULTIPLIER = 1.1

HOUSING_SUBSIDY_INCOME_LIMIT = 50_000.0
JOB_LOSS_INCOME_RETAINED = 0.3

EV_CHARGING_KWH_PER_MILE = 0.3
EV_CHARGING_DAYS_PER_MONTH = 30
GREEN_ENERGY_SAVING_PROBABILITY = 0.3
GREEN_ENERGY_SAVING_FACTOR = 0.93


@dataclass(frozen=True)
class ElasticityDraw:
    """Economic regime of one trial, shared by every person in it."""

    wage_elasticity: float
    rent_elasticity: float
    employment_elasticity: float
    education_effectiveness: float
    sector_shift_probability: float


def draw_elasticities(
    rng: np.random.Generator,
    policy: PolicySettings,
    elasticities: Optional[ElasticityConfig] = None,
) -> ElasticityDraw:
    """Sample the per-trial coefficients uniformly within their configured ranges."""

    cfg = elasticities or default_config().elasticities
    return ElasticityDraw(
        wage_elasticity=float(rng.uniform(*cfg.wage_elasticity)),
        rent_elasticity=float(rng.uniform(*cfg.rent_elasticity)),
        employment_elasticity=float(rng.uniform(*cfg.employment_elasticity)),
        education_effectiveness=float(rng.uniform(*cfg.education_effectiveness)),
        sector_shift_probability=cfg.sector_shift.probability(policy.green_jobs_incentive),
    )


def transform(
    person: PersonRecord,
    policy: PolicySettings,
    draw: ElasticityDraw,
    rng: np.random.Generator,
    *,
    default_vehicle_owned: bool = True,
    elasticities: Optional[ElasticityConfig] = None,
) -> TransformedPerson:
    """Apply the policy pipeline to one person and return the derived record.

    ``default_vehicle_owned`` is used for people without ownership data; the
    orchestrator derives it from the baseline ownership rate.
    """

    cfg = elasticities or default_config().elasticities
    wage_shock = (policy.min_wage - cfg.reference_min_wage) / cfg.reference_min_wage
    events: List[str] = []

    income = person.income
    rent = person.rent
    employed = person.employed
    mode = person.commute_mode
    education = person.education_level
    sector = person.employment_sector
    vehicle_owned = default_vehicle_owned if person.vehicle_owned is None else person.vehicle_owned

    # 1. minimum wage
    if income < policy.min_wage * cfg.full_time_hours:
        income *= 1 + wage_shock * draw.wage_elasticity

    # 2. education subsidy
    if policy.education_subsidy > 0 and rng.random() < (policy.education_subsidy / 1000) * draw.education_effectiveness:
        promotion = EDUCATION_PROMOTIONS.get(education)
        if promotion is not None:
            education, multiplier = promotion
            income *= multiplier
            events.append("education_upgrade")

    # 3. green jobs
    if policy.green_jobs_incentive > 0 and rng.random() < draw.sector_shift_probability:
        if sector not in GREEN_SECTORS:
            sector = GREEN_SECTORS[0] if rng.random() < 0.5 else GREEN_SECTORS[1]
            income *= SECTOR_SHIFT_INCOME_MULTIPLIER
            events.append("sector_shift")

    # 4. rent pass-through
    rent *= 1 + wage_shock * draw.rent_elasticity

    # 5. housing subsidy
    if policy.housing_subsidy > 0 and income < HOUSING_SUBSIDY_INCOME_LIMIT:
        rent = max(0.0, rent - policy.housing_subsidy)

    # 6. employment shock; applies whatever the current employment status
    if rng.random() < abs(draw.employment_elasticity * wage_shock):
        employed = False
        income *= JOB_LOSS_INCOME_RETAINED
        events.append("job_loss")

    # 7. income tax
    disposable_income = income * (1 - policy.tax_rate)

    # 8. transit subsidy
    if policy.transit_subsidy > 0 and mode in DRIVING_MODES:
        if rng.random() < cfg.transit_shift.probability(policy.transit_subsidy):
            mode = "transit"
            events.append("transit_shift")

    # 9. EV incentive
    if policy.ev_incentive > 0 and mode in DRIVING_MODES:
        if rng.random() < cfg.ev_adoption.probability(policy.ev_incentive):
            mode = "ev"
            vehicle_owned = True
            events.append("ev_adoption")

    # 10. carbon tax, charged at the driving factor on the commute distance
    carbon_cost = policy.carbon_tax * person.commute_distance * DEFAULT_EMISSION_FACTOR * COMMUTE_DAYS_PER_YEAR
    adjusted_income = income - carbon_cost
    disposable_income -= carbon_cost

    # 11. energy use
    energy = person.energy_use
    energy *= min(1.3, 0.8 + (adjusted_income / 100_000) * 0.5)
    energy *= 1 + (person.household_size - 2) * 0.15
    if mode == "ev":
        energy += person.commute_distance * EV_CHARGING_KWH_PER_MILE * EV_CHARGING_DAYS_PER_MONTH
    if sector == "Green Energy" and rng.random() < GREEN_ENERGY_SAVING_PROBABILITY:
        energy *= GREEN_ENERGY_SAVING_FACTOR
        events.append("green_energy_saving")

    # 12. emissions and rent burden
    emissions = commute_emissions(person.commute_distance, mode)
    rent_burden = rent * 12 / adjusted_income if adjusted_income != 0 else float("inf")

    return TransformedPerson(
        original_income=person.income,
        income=income,
        adjusted_income=adjusted_income,
        disposable_income=disposable_income,
        income_change=adjusted_income - person.income,
        rent=rent,
        rent_burden=rent_burden,
        employed=employed,
        commute_mode=mode,
        commute_distance=person.commute_distance,
        commute_emissions=emissions,
        vehicle_owned=vehicle_owned,
        education_level=education,
        employment_sector=sector,
        original_sector=person.employment_sector,
        household_size=person.household_size,
        race_ethnicity=person.race_ethnicity,
        county=person.county,
        energy_use=energy,
        events=tuple(events),
    )


__all__ = ["ElasticityDraw", "draw_elasticities", "transform", "DRIVING_MODES"]
