import pytest

from ripple_model.baseline import compute_baseline
from ripple_model.entities import PersonRecord, PolicySettings
from ripple_model.errors import (
    ComputationError,
    InvalidTrialCount,
    NoPopulationLoaded,
    SimulationCancelled,
)
from ripple_model.model.policy_transform import ElasticityDraw, transform
from ripple_model.model.simulation import (
    CancellationToken,
    GroupAccumulator,
    MonteCarloSimulator,
    SimulationState,
    SUMMARY_METRICS,
    rank_group_impacts,
    run_simulation,
)

ACTIVE_POLICY = PolicySettings(
    min_wage=20.0,
    carbon_tax=5.0,
    housing_subsidy=200.0,
    education_subsidy=800.0,
    transit_subsidy=400.0,
    ev_incentive=5_000.0,
    green_jobs_incentive=10.0,
)


def _commuters():
    return [
        PersonRecord(income=income, rent=1_000, commute_mode="drive", commute_distance=10, county=county)
        for income, county in [(20_000, "Kern"), (45_000, "Kern"), (90_000, "Marin")]
    ]


def test_neutral_policy_reproduces_baseline():
    people = _commuters()
    baseline = compute_baseline(people)

    summary = run_simulation(people, PolicySettings(tax_rate=0.0), baseline, n_trials=1, seed=1)

    assert baseline.total_co2_emissions == pytest.approx(3_000.0)
    assert summary.n_trials == 1
    assert summary.metric("income").mean == pytest.approx(baseline.mean_income)
    assert summary.metric("disposable_income").mean == pytest.approx(baseline.mean_income)
    assert summary.metric("gini").mean == pytest.approx(baseline.gini_coefficient)
    assert summary.metric("emissions").mean == pytest.approx(1_000.0)
    assert summary.metric("employment").mean == 1.0
    for impacts in summary.equity.values():
        assert all(item.mean_income_change == 0 for item in impacts)


def test_same_seed_is_reproducible(small_population):
    first = run_simulation(small_population, ACTIVE_POLICY, n_trials=20, seed=42)
    second = run_simulation(small_population, ACTIVE_POLICY, n_trials=20, seed=42)

    assert first.trials == second.trials
    assert first.metrics == second.metrics


def test_split_batches_merge_to_single_pass(small_population):
    simulator = MonteCarloSimulator(small_population, ACTIVE_POLICY, n_trials=12, seed=3)

    split = simulator.run_trials(7, 12).merge(simulator.run_trials(0, 7))
    whole = simulator.run_trials(0, 12)

    assert split.results == whole.results
    for dimension in ("race", "county", "income_bracket", "sector"):
        merged = split.accumulator.mean_changes(dimension)
        single = whole.accumulator.mean_changes(dimension)
        assert merged.keys() == single.keys()
        for group, change in single.items():
            assert merged[group] == pytest.approx(change)


def test_chunk_size_does_not_change_results(small_population):
    coarse = MonteCarloSimulator(small_population, ACTIVE_POLICY, n_trials=15, seed=9, chunk_size=15).run()
    fine = MonteCarloSimulator(small_population, ACTIVE_POLICY, n_trials=15, seed=9, chunk_size=2).run()

    assert coarse.trials == fine.trials
    assert coarse.metrics == fine.metrics


def test_confidence_intervals_bracket_trial_range(small_population):
    summary = run_simulation(small_population, ACTIVE_POLICY, n_trials=100, seed=5)

    assert len(summary.trials) == 100
    assert [t.trial for t in summary.trials] == list(range(1, 101))
    for name, metric in summary.metrics.items():
        values = [getattr(t, SUMMARY_METRICS[name]) for t in summary.trials]
        assert min(values) <= metric.ci95_lower <= metric.ci95_upper <= max(values)
        assert min(values) - 1e-6 <= metric.mean <= max(values) + 1e-6


def test_equity_ranked_by_mean_change_against_group_baseline():
    people = [
        PersonRecord(income=50_000, race_ethnicity="A"),
        PersonRecord(income=10_000, race_ethnicity="B"),
        PersonRecord(income=40_000, race_ethnicity="C"),
    ]
    baseline = compute_baseline(people)
    accumulator = GroupAccumulator({"race": {"C": (-400.0, 2), "A": (1_000.0, 2), "B": (100.0, 1)}})

    ranked = rank_group_impacts(accumulator, baseline)["race"]

    assert [g.group for g in ranked] == ["A", "B", "C"]
    assert [g.mean_income_change for g in ranked] == [500.0, 100.0, -200.0]
    assert [g.percent_change for g in ranked] == pytest.approx([1.0, 1.0, -0.5])
    assert ranked[1].baseline_income == 10_000


def test_missing_group_baseline_falls_back_to_population_mean():
    people = [PersonRecord(income=30_000, race_ethnicity="A"), PersonRecord(income=50_000, race_ethnicity="A")]
    baseline = compute_baseline(people)
    accumulator = GroupAccumulator({"race": {"Z": (400.0, 1)}})

    (impact,) = rank_group_impacts(accumulator, baseline)["race"]

    assert impact.baseline_income == 40_000
    assert impact.percent_change == pytest.approx(1.0)


def test_zero_group_baseline_is_a_computation_error():
    people = [PersonRecord(income=0, race_ethnicity="D"), PersonRecord(income=50_000, race_ethnicity="E")]
    baseline = compute_baseline(people)

    with pytest.raises(ComputationError):
        rank_group_impacts(GroupAccumulator({"race": {"D": (10.0, 1)}}), baseline)


def test_non_finite_trial_fails_the_run():
    people = [PersonRecord(income=0, rent=500, commute_mode="walk")]
    simulator = MonteCarloSimulator(people, PolicySettings(), n_trials=3, seed=0)

    with pytest.raises(ComputationError, match="Trial 1"):
        simulator.run()
    assert simulator.state is SimulationState.FAILED
    assert simulator.summary is None


def test_invalid_inputs_are_rejected(small_population):
    with pytest.raises(NoPopulationLoaded):
        MonteCarloSimulator([], PolicySettings())
    with pytest.raises(InvalidTrialCount):
        MonteCarloSimulator(small_population, PolicySettings(), n_trials=0)


def test_progress_is_reported_per_chunk(small_population):
    seen = []
    simulator = MonteCarloSimulator(small_population, ACTIVE_POLICY, n_trials=10, seed=1, chunk_size=4)

    simulator.run(progress_callback=lambda p: seen.append(p.completed))

    assert seen == [4, 8, 10]
    assert simulator.progress.percent == 100.0
    assert simulator.state is SimulationState.COMPLETE


def test_cancellation_between_chunks_discards_results(small_population):
    simulator = MonteCarloSimulator(small_population, ACTIVE_POLICY, n_trials=10, seed=1, chunk_size=2)
    token = CancellationToken()

    chunks = simulator.iter_chunks(token)
    next(chunks)
    token.cancel()
    remaining = list(chunks)

    assert remaining == []
    assert simulator.state is SimulationState.CANCELLED
    assert simulator.summary is None


def test_cancelled_run_raises(small_population):
    token = CancellationToken()
    token.cancel()
    simulator = MonteCarloSimulator(small_population, ACTIVE_POLICY, n_trials=5, seed=1)

    with pytest.raises(SimulationCancelled):
        simulator.run(token)


def test_missing_baseline_is_recomputed(small_population):
    simulator = MonteCarloSimulator(small_population, ACTIVE_POLICY, baseline=None, n_trials=2, seed=1)

    assert simulator.baseline.total_population == 3


def test_summary_to_dict(small_population):
    data = run_simulation(small_population, ACTIVE_POLICY, n_trials=3, seed=2).to_dict()

    assert data["n_trials"] == 3
    assert set(data["metrics"]["income"]) == {"mean", "ci95_lower", "ci95_upper"}
    assert set(data["equity"]) == {"race", "county", "income_bracket", "sector"}
    assert data["policy"]["min_wage"] == 20.0


def test_sector_equity_follows_green_jobs_shift():
    people = [PersonRecord(income=40_000, employment_sector="Retail") for _ in range(4)]
    baseline = compute_baseline(people)
    policy = PolicySettings(tax_rate=0.0, green_jobs_incentive=20.0)
    draw = ElasticityDraw(1.0, 0.04, -0.03, 1.0, sector_shift_probability=1.0)

    class AlwaysRng:
        def random(self):
            return 0.0

    shifted = [transform(p, policy, draw, AlwaysRng()) for p in people]
    sectors = GroupAccumulator.from_people(shifted).mean_changes("sector")

    assert set(sectors) == {"Green Energy"}
    assert sectors["Green Energy"] == pytest.approx(4_000.0)

    (impact,) = rank_group_impacts(GroupAccumulator.from_people(shifted), baseline)["sector"]
    # Green Energy has no baseline group, so the population mean is used
    assert impact.baseline_income == 40_000
    assert impact.percent_change == pytest.approx(10.0)


@pytest.mark.parametrize(
    "ownership, expected",
    [([True, False], False), ([True, True, False], True), ([None, None], True)],
)
def test_unknown_ownership_needs_a_strict_majority_of_owners(ownership, expected):
    people = [PersonRecord(vehicle_owned=owned) for owned in ownership]

    simulator = MonteCarloSimulator(people, PolicySettings(), n_trials=1, seed=0)

    assert simulator.default_vehicle_owned is expected
