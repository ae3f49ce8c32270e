import pytest

from ripple_model.entities import PersonRecord


@pytest.fixture
def small_population():
    return [
        PersonRecord(
            income=20_000, rent=800, commute_mode="drive", commute_distance=10,
            race_ethnicity="Asian", county="Alameda", employment_sector="Retail",
            education_level="High School", vehicle_owned=True,
        ),
        PersonRecord(
            income=40_000, rent=1_000, commute_mode="transit", commute_distance=10,
            race_ethnicity="White", county="Alameda", employment_sector="Tech",
            education_level="Bachelor", vehicle_owned=False,
        ),
        PersonRecord(
            income=80_000, rent=2_000, commute_mode="bike", commute_distance=4,
            race_ethnicity="Asian", county="Marin", employment_sector="Tech",
            education_level="Bachelor", vehicle_owned=True, employed=False,
        ),
    ]
