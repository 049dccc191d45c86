"""
Pytest configuration and shared fixtures for track engine tests.
"""

import random
from typing import Dict

import pytest

from tests.helpers import BLUE, RED, make_line, make_snapshot, make_station
from trackengine.config.loader import EngineSettings
from trackengine.core.models import Mode, Station, SystemSnapshot


@pytest.fixture
def modes() -> Dict[str, Mode]:
    """Small mode table; RAPID is the default mode."""
    return {
        "RAPID": Mode(key="RAPID", speed=1.0, acceleration=2.0, pause=500.0, label="Metro/rapid transit"),
        "BUS": Mode(key="BUS", speed=0.4, acceleration=2.0, pause=300.0, label="Local bus"),
        "GONDOLA": Mode(key="GONDOLA", speed=1 / 3, acceleration=2.0, pause=0.0, label="Gondola"),
    }


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def row_stations() -> Dict[str, Station]:
    """Stations A..E on a north-south row, about 1.1 km apart."""
    return {
        sid: make_station(sid, lat=0.01 * i, lng=0.0)
        for i, sid in enumerate(["A", "B", "C", "D", "E"])
    }


@pytest.fixture
def shared_track_snapshot() -> SystemSnapshot:
    """L1: A-B-C in red, L2: B-C-D in blue."""
    stations = [make_station(sid, 0.01 * i, 0.0) for i, sid in enumerate("ABCD")]
    return make_snapshot(stations, [
        make_line("L1", ["A", "B", "C"], color=RED),
        make_line("L2", ["B", "C", "D"], color=BLUE),
    ])
