import numpy as np
import pytest

from ripple_model.config import default_config
from ripple_model.entities import PersonRecord, PolicySettings
from ripple_model.model.policy_transform import ElasticityDraw, draw_elasticities, transform


class FixedRng:
    """Stands in for a numpy Generator; every Bernoulli draw returns ``value``."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


NEUTRAL_DRAW = ElasticityDraw(
    wage_elasticity=1.0,
    rent_elasticity=0.04,
    employment_elasticity=-0.03,
    education_effectiveness=1.0,
    sector_shift_probability=0.0,
)

NO_TAX = PolicySettings(tax_rate=0.0)


def _person(**overrides):
    values = dict(income=40_000, rent=1_000, commute_mode="drive", commute_distance=10, household_size=2)
    values.update(overrides)
    return PersonRecord(**values)


def test_reference_minimum_wage_leaves_person_unchanged():
    result = transform(_person(), NO_TAX, NEUTRAL_DRAW, FixedRng(0.0))

    assert result.income == 40_000
    assert result.adjusted_income == 40_000
    assert result.income_change == 0
    assert result.rent == 1_000
    assert result.employed is True
    assert result.commute_mode == "drive"
    assert result.commute_emissions == pytest.approx(1_000.0)
    assert result.energy_use == pytest.approx(100.0)
    assert result.rent_burden == pytest.approx(12_000 / 40_000)
    assert result.events == ()


def test_minimum_wage_raises_low_incomes_and_rents():
    policy = NO_TAX.replace(min_wage=20.0)

    low = transform(_person(income=20_000, rent=800), policy, NEUTRAL_DRAW, FixedRng(0.99))
    high = transform(_person(income=60_000), policy, NEUTRAL_DRAW, FixedRng(0.99))

    assert low.income == pytest.approx(20_000 * (1 + 1 / 3))
    assert low.rent == pytest.approx(800 * (1 + 0.04 / 3))
    # above 20 * 2080 the wage floor does not bind
    assert high.income == 60_000
    assert high.rent == pytest.approx(1_000 * (1 + 0.04 / 3))


def test_carbon_tax_is_charged_on_commute_distance():
    policy = PolicySettings(carbon_tax=10.0, tax_rate=0.2)

    result = transform(_person(commute_mode="bike"), policy, NEUTRAL_DRAW, FixedRng(0.99))

    # 10 · 10 miles · 0.4 · 250 days, whatever the mode
    assert result.adjusted_income == pytest.approx(30_000)
    assert result.disposable_income == pytest.approx(40_000 * 0.8 - 10_000)
    assert result.income_change == pytest.approx(-10_000)
    assert result.commute_emissions == 0


def test_housing_subsidy_only_below_income_limit():
    policy = NO_TAX.replace(housing_subsidy=500.0)

    eligible = transform(_person(rent=800), policy, NEUTRAL_DRAW, FixedRng(0.99))
    floored = transform(_person(rent=400), policy, NEUTRAL_DRAW, FixedRng(0.99))
    ineligible = transform(_person(income=70_000, rent=800), policy, NEUTRAL_DRAW, FixedRng(0.99))

    assert eligible.rent == 300
    assert floored.rent == 0
    assert ineligible.rent == 800


def test_certain_draws_fire_every_applicable_event():
    policy = NO_TAX.replace(education_subsidy=1_000.0, green_jobs_incentive=20.0, transit_subsidy=500.0)
    draw = ElasticityDraw(1.0, 0.04, -0.03, 1.0, sector_shift_probability=0.35)

    result = transform(_person(employment_sector="Retail"), policy, draw, FixedRng(0.0))

    assert result.education_level == "Some College"
    assert result.employment_sector == "Green Energy"
    assert result.original_sector == "Retail"
    assert result.commute_mode == "transit"
    assert result.income == pytest.approx(40_000 * 1.15 * 1.1)
    assert result.commute_emissions == pytest.approx(10 * 0.15 * 250)
    assert result.events == ("education_upgrade", "sector_shift", "transit_shift", "green_energy_saving")


def test_ev_adoption_adds_charging_load():
    policy = NO_TAX.replace(ev_incentive=5_000.0)

    result = transform(_person(vehicle_owned=False), policy, NEUTRAL_DRAW, FixedRng(0.0))

    assert result.commute_mode == "ev"
    assert result.vehicle_owned is True
    assert result.commute_emissions == pytest.approx(250.0)
    assert result.energy_use == pytest.approx(100.0 + 10 * 0.3 * 30)
    assert result.events == ("ev_adoption",)


def test_employment_shock_keeps_thirty_percent_of_income():
    policy = NO_TAX.replace(min_wage=25.0)

    result = transform(_person(income=100_000), policy, NEUTRAL_DRAW, FixedRng(0.0))

    assert result.employed is False
    assert result.income == pytest.approx(30_000)
    assert "job_loss" in result.events


def test_zero_incentives_never_change_mode_or_sector():
    result = transform(_person(employment_sector="Retail"), NO_TAX, NEUTRAL_DRAW, FixedRng(0.0))

    assert result.commute_mode == "drive"
    assert result.employment_sector == "Retail"
    assert result.education_level == "High School"


def test_unknown_vehicle_ownership_uses_default():
    person = _person(vehicle_owned=None)

    assert transform(person, NO_TAX, NEUTRAL_DRAW, FixedRng(0.5), default_vehicle_owned=False).vehicle_owned is False
    assert transform(person, NO_TAX, NEUTRAL_DRAW, FixedRng(0.5), default_vehicle_owned=True).vehicle_owned is True


def test_zero_adjusted_income_gives_infinite_rent_burden():
    result = transform(_person(income=0), NO_TAX, NEUTRAL_DRAW, FixedRng(0.99))

    assert result.rent_burden == float("inf")


def test_same_seed_gives_identical_output():
    policy = PolicySettings(min_wage=20, education_subsidy=800, green_jobs_incentive=10, transit_subsidy=400)
    person = _person(income=25_000)

    def run(seed):
        rng = np.random.default_rng(seed)
        return transform(person, policy, draw_elasticities(rng, policy), rng)

    assert run(7) == run(7)


def test_draw_elasticities_stays_within_configured_ranges():
    cfg = default_config().elasticities
    policy = PolicySettings(green_jobs_incentive=10)
    rng = np.random.default_rng(0)

    for _ in range(50):
        draw = draw_elasticities(rng, policy)
        assert cfg.wage_elasticity[0] <= draw.wage_elasticity <= cfg.wage_elasticity[1]
        assert cfg.rent_elasticity[0] <= draw.rent_elasticity <= cfg.rent_elasticity[1]
        assert cfg.employment_elasticity[0] <= draw.employment_elasticity <= cfg.employment_elasticity[1]
        assert draw.sector_shift_probability == pytest.approx(0.05 + 0.1 * 0.15)


def test_housing_eligibility_uses_income_after_education_upgrade():
    person = _person(income=45_000, rent=1_000, education_level="High School")
    subsidy_only = NO_TAX.replace(housing_subsidy=300.0)
    with_education = subsidy_only.replace(education_subsidy=1_000.0)

    plain = transform(person, subsidy_only, NEUTRAL_DRAW, FixedRng(0.0))
    upgraded = transform(person, with_education, NEUTRAL_DRAW, FixedRng(0.0))

    assert plain.rent == 700
    # 45k · 1.15 crosses the 50k limit before the subsidy step
    assert upgraded.income == pytest.approx(51_750)
    assert upgraded.rent == 1_000


def test_job_loss_scales_income_after_every_earlier_multiplier():
    policy = NO_TAX.replace(min_wage=20.0, education_subsidy=1_000.0, green_jobs_incentive=20.0)
    draw = ElasticityDraw(1.0, 0.04, -0.03, 1.0, sector_shift_probability=0.35)

    result = transform(_person(income=20_000, employment_sector="Retail"), policy, draw, FixedRng(0.0))

    assert result.events[:3] == ("education_upgrade", "sector_shift", "job_loss")
    assert result.income == pytest.approx(20_000 * (1 + 1 / 3) * 1.15 * 1.1 * 0.3)


def test_energy_income_factor_uses_income_after_carbon_cost():
    policy = NO_TAX.replace(carbon_tax=10.0)

    result = transform(_person(income=100_000), policy, NEUTRAL_DRAW, FixedRng(0.99))

    # adjusted income 90k gives 0.8 + 0.45; the pre-carbon 100k would hit the 1.3 cap
    assert result.adjusted_income == pytest.approx(90_000)
    assert result.energy_use == pytest.approx(125.0)
