"""Shared fixtures for converter tests."""

import pytest

from rowbike_converter.db.sqlite_store import SQLiteCalibrationStore
from rowbike_converter.models import CalibrationProfile, Modality, Sample


@pytest.fixture
def bike_samples():
    """Four realistic BikeErg calibration samples."""
    return [
        Sample(rpm=70, watts=150, timestamp=1_700_000_000_000),
        Sample(rpm=80, watts=200, timestamp=1_700_000_001_000),
        Sample(rpm=90, watts=260, timestamp=1_700_000_002_000),
        Sample(rpm=100, watts=330, timestamp=1_700_000_003_000),
    ]


@pytest.fixture
def make_profile(bike_samples):
    """Factory for calibration profiles with sensible defaults."""
    def _make(**overrides):
        values = {
            "modality": Modality.BIKE,
            "damper": 5,
            "a": 0.0026,
            "b": 3.2,
            "r2": 0.98,
            "samples": list(bike_samples),
        }
        values.update(overrides)
        return CalibrationProfile(**values)

    return _make


@pytest.fixture
def store(tmp_path):
    """Initialized SQLite store in a temporary directory."""
    store = SQLiteCalibrationStore(tmp_path / "calibrations.db", user_id="user-1")
    store.initialize()
    yield store
    store.close()
