"""
Swiss Ephemeris adapter.

Wraps the ``swisseph`` binding behind the small surface the horoscope
transformer needs: Julian day conversion, sidereal mode selection and
per-body position calculation.

Swiss Ephemeris keeps the sidereal mode in process-global state and is not
thread-safe, so every caller that sets the mode and then calculates must hold
``SwissEphemeris.lock`` for the whole sequence.
"""

import logging
import os
import threading
from typing import Any, Dict

import swisseph as swe

logger = logging.getLogger(__name__)

# One lock per process; every adapter instance shares it
_swe_lock = threading.Lock()

# The only supported ayanamsha; reported by name in health and system info
SIDEREAL_MODE_NAME = "LAHIRI"

SIDEREAL_FLAGS = swe.FLG_SWIEPH | swe.FLG_SIDEREAL | swe.FLG_SPEED
# Right ascension and declination are taken against the true equator of date
EQUATORIAL_FLAGS = swe.FLG_SWIEPH | swe.FLG_SPEED | swe.FLG_EQUATORIAL


class EphemerisError(Exception):
    """Raised when Swiss Ephemeris cannot compute a body position."""

    def __init__(self, body_id: int, message: str):
        self.body_id = body_id
        super().__init__(f"body {body_id}: {message}")


class SwissEphemeris:
    """
    Thin wrapper over the ``swisseph`` module.

    Instances are cheap; the underlying library state is global, so they all
    share the same lock.
    """

    lock = _swe_lock

    def __init__(self, ephe_path: str = None):
        self.ephe_path = ephe_path
        if ephe_path:
            self.set_ephe_path(ephe_path)

    @property
    def version(self) -> str:
        return getattr(swe, "version", "unknown")

    def set_ephe_path(self, path: str) -> None:
        """Point Swiss Ephemeris at its data files (falls back to Moshier if absent)."""
        if not os.path.isdir(path):
            logger.warning(f"Ephemeris path {path} not found, Swiss Ephemeris will fall back to Moshier")
        with self.lock:
            swe.set_ephe_path(path)
        self.ephe_path = path

    def julian_day(self, year: int, month: int, day: int, hour: float) -> float:
        """Julian day (UT) for a proleptic Gregorian date and fractional hour."""
        return swe.julday(year, month, day, hour, swe.GREG_CAL)

    def set_sidereal_mode(self, mode: int, t0: float = 0.0, value: float = 0.0) -> None:
        """Select the ayanamsha (an ``swe.SIDM_*`` constant). Caller must hold ``lock``."""
        swe.set_sid_mode(mode, t0, value)

    def calc_position(self, jd: float, body_id: int, flags: int) -> Dict[str, Any]:
        """
        Compute one body's position.

        Returns a dict keyed like the ephemeris output: ``longitude``,
        ``latitude``, ``distance`` and ``speed`` for ecliptic flags, or
        ``rectascension``, ``declination``, ``distance`` and ``speed`` when
        ``FLG_EQUATORIAL`` is set.

        Raises:
            EphemerisError: if Swiss Ephemeris reports an error for the body
        """
        try:
            xx, _retflag = swe.calc_ut(jd, body_id, flags)
        except swe.Error as e:
            raise EphemerisError(body_id, str(e)) from e

        if flags & swe.FLG_EQUATORIAL:
            return {
                "rectascension": xx[0],
                "declination": xx[1],
                "distance": xx[2],
                "speed": xx[3],
            }
        return {
            "longitude": xx[0],
            "latitude": xx[1],
            "distance": xx[2],
            "speed": xx[3],
        }
