import threading

import pytest
import swisseph as swe
from fastapi.testclient import TestClient

from horoscope_api.config import AppConfig
from horoscope_api.ephemeris.swiss import EphemerisError
from horoscope_api.locations import BUILTIN_CITIES, CityTable
from horoscope_api.main import create_app


# Deterministic stand-in values: body id -> (longitude, speed, ra, dec)
FAKE_POSITIONS = {
    swe.SUN: (256.123456789, 1.019, 281.5, -23.0),
    swe.MOON: (150.5, 13.2, 152.0, 10.5),
    swe.MERCURY: (240.25, -0.05, 265.0, -21.0),
    swe.VENUS: (215.0, 1.2, 240.0, -18.0),
    swe.MARS: (250.0, 0.75, 275.0, -24.0),
    swe.JUPITER: (11.5, -0.01, 36.0, 13.0),
    swe.SATURN: (309.0, 0.1, 335.0, -12.0),
    swe.URANUS: (25.6, -0.02, 50.0, 18.0),
    swe.NEPTUNE: (331.0, 0.01, 355.0, -3.0),
    swe.PLUTO: (275.6, 0.03, 300.0, -23.0),
    swe.MEAN_NODE: (351.25, -0.052956, 20.0, 8.0),
}


class FakeEphemeris:
    """
    In-memory ephemeris with the same surface as SwissEphemeris.

    ``failing`` holds body ids that raise EphemerisError; ``overrides`` maps a
    body id to replacement (longitude, speed, ra, dec) values.
    """

    version = "fake-1.0"

    def __init__(self, failing=(), overrides=None):
        self.lock = threading.Lock()
        self.failing = set(failing)
        self.positions = dict(FAKE_POSITIONS)
        self.positions.update(overrides or {})
        self.sidereal_calls = []
        self.calc_calls = []
        self.lock_held_during_calc = []

    def julian_day(self, year, month, day, hour):
        # Fliegel-Van Flandern day number, shifted to the noon epoch
        a = (14 - month) // 12
        y = year + 4800 - a
        m = month + 12 * a - 3
        jdn = day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045
        return jdn + (hour - 12) / 24

    def set_sidereal_mode(self, mode, t0=0.0, value=0.0):
        self.sidereal_calls.append((mode, t0, value))

    def calc_position(self, jd, body_id, flags):
        self.calc_calls.append((jd, body_id, flags))
        self.lock_held_during_calc.append(self.lock.locked())
        if body_id in self.failing:
            raise EphemerisError(body_id, "simulated failure")

        lon, speed, ra, dec = self.positions[body_id]
        if flags & swe.FLG_EQUATORIAL:
            return {"rectascension": ra, "declination": dec, "distance": 1.0, "speed": speed}
        return {"longitude": lon, "latitude": 0.0, "distance": 1.0, "speed": speed}


@pytest.fixture
def fake_ephemeris():
    return FakeEphemeris()


@pytest.fixture
def cities():
    return CityTable(BUILTIN_CITIES)


@pytest.fixture
def app_config(tmp_path):
    """Configuration that never touches files outside the test directory."""
    return AppConfig(
        reference={"cities_file": str(tmp_path / "missing-cities.yaml")},
        logging={"level": "WARNING", "json": False},
    )


@pytest.fixture
def client(app_config, fake_ephemeris):
    app = create_app(app_config, ephemeris=fake_ephemeris)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def delhi_request():
    """Canonical request used throughout the docs."""
    return {"date": "2024-01-01", "time": "12:00", "location": "delhi"}
