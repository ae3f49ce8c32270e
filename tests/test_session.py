import pytest

from ripple_model.entities import PersonRecord, PolicySettings
from ripple_model.errors import (
    CollaboratorError,
    EmptyPopulation,
    NoPopulationLoaded,
    SimulationCancelled,
    StaleBaseline,
)
from ripple_model.insights.collaborator import InsightCollaborator, InsightKind, InsightService
from ripple_model.model.simulation import SimulationState
from ripple_model.orchestration.session import SimulationSession


class OfflineService(InsightService):
    def generate(self, prompt, *, max_output_tokens=512):
        raise CollaboratorError("offline")


@pytest.fixture
def session():
    return SimulationSession(insights=InsightCollaborator(service=OfflineService()))


def test_simulate_requires_population(session):
    with pytest.raises(NoPopulationLoaded):
        session.simulate(PolicySettings())


def test_simulate_publishes_summary(session, small_population):
    session.load_population(small_population)
    policy = PolicySettings(min_wage=18.0)

    summary = session.simulate(policy, 5, seed=1)

    assert session.summary is summary
    assert session.last_policy == policy
    assert session.state is SimulationState.COMPLETE
    assert session.progress.completed == 5


def test_reload_discards_previous_summary(session, small_population):
    session.load_population(small_population)
    session.simulate(PolicySettings(), 3, seed=1)

    baseline = session.load_population(small_population[:2])

    assert session.summary is None
    assert baseline.total_population == 2
    with pytest.raises(StaleBaseline):
        session.generate_insights()


def test_empty_population_keeps_previous_state(session, small_population):
    session.load_population(small_population)

    with pytest.raises(EmptyPopulation):
        session.load_population([])

    assert len(session.population) == 3
    assert session.baseline.total_population == 3


def test_missing_baseline_is_recomputed(session, small_population):
    session.load_population(small_population)
    session.baseline = None

    summary = session.simulate(PolicySettings(), 2, seed=4)

    assert session.baseline is not None
    assert summary.n_trials == 2


def test_population_change_during_run_cancels_it(session, small_population):
    session.load_population(small_population)

    def reload_midway(progress):
        session.load_population([PersonRecord(income=55_000)])

    with pytest.raises(SimulationCancelled):
        session.simulate(PolicySettings(), 20, seed=1, progress_callback=reload_midway)

    assert session.summary is None
    assert len(session.population) == 1


def test_insights_fall_back_offline(session, small_population):
    session.load_population(small_population)
    session.simulate(PolicySettings(carbon_tax=5.0), 3, seed=1)

    texts = session.generate_insights()

    assert set(texts) == set(InsightKind)
    assert all(isinstance(text, str) and text for text in texts.values())
