"""
Sidereal horoscope computation.

Turns a ``{date, time, location}`` request into sidereal positions for the
fixed body list, delegating all astronomy to the ephemeris adapter.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import swisseph as swe

from .ephemeris.bodies import BODIES, KETU, RAHU, Body
from .ephemeris.swiss import EQUATORIAL_FLAGS, SIDEREAL_FLAGS, EphemerisError
from .errors import InvalidFormat, MissingField, UnsupportedLocation
from .locations import CityTable
from .obs.logging import StructuredLogger
from .obs.metrics import metrics
from .schemas import (
    NOT_AVAILABLE, CoordinatesOut, HoroscopeRequest, HoroscopeResponse,
    PositionOut, RequestEcho
)

logger = logging.getLogger(__name__)
business_logger = StructuredLogger(__name__)


def format_value(value: Optional[float], zero_as_unavailable: bool = True) -> str:
    """
    Render an ephemeris value with 6 fractional digits.

    Missing values render as "N/A". An exact zero also renders as "N/A" when
    ``zero_as_unavailable`` is set, which reproduces the historical output of
    this API.
    """
    if value is None or math.isnan(value):
        return NOT_AVAILABLE
    if value == 0 and zero_as_unavailable:
        return NOT_AVAILABLE
    return f"{value:.6f}"


def _split_ints(text: str, sep: str, count: int) -> List[int]:
    parts = text.split(sep)
    if len(parts) < count:
        raise InvalidFormat(detail=f"expected {count} '{sep}'-separated parts in {text!r}")
    try:
        return [int(part) for part in parts[:count]]
    except ValueError:
        raise InvalidFormat(detail=f"non-integer part in {text!r}")


def parse_date(date: str) -> Tuple[int, int, int]:
    """Split ``YYYY-MM-DD`` into integers. Ranges are not checked."""
    year, month, day = _split_ints(date, "-", 3)
    return year, month, day


def parse_time(time: str) -> float:
    """Convert ``HH:MM`` to a fractional hour. No timezone conversion is applied."""
    hour, minute = _split_ints(time, ":", 2)
    return hour + minute / 60


def derive_ketu(rahu: PositionOut) -> PositionOut:
    """Descending node: Rahu's longitude + 180°, same speed, no equatorial angles."""
    if rahu.longitude == NOT_AVAILABLE:
        longitude = NOT_AVAILABLE
    else:
        longitude = f"{(float(rahu.longitude) + 180) % 360:.6f}"

    return PositionOut(
        planet=KETU,
        longitude=longitude,
        speed=rahu.speed,
        retrograde=rahu.retrograde,
        right_ascension=NOT_AVAILABLE,
        declination=NOT_AVAILABLE,
    )


class HoroscopeService:
    """
    Request transformer for ``POST /horoscope``.

    Holds only immutable inputs (city table, body list, options) and the
    ephemeris adapter, so one instance serves every request.
    """

    def __init__(
        self,
        ephemeris,
        cities: CityTable,
        bodies: Sequence[Body] = BODIES,
        include_equatorial: bool = True,
        zero_as_unavailable: bool = True,
    ):
        self.ephemeris = ephemeris
        self.cities = cities
        self.bodies = tuple(bodies)
        self.include_equatorial = include_equatorial
        self.zero_as_unavailable = zero_as_unavailable

    def handle(self, req: HoroscopeRequest) -> HoroscopeResponse:
        """
        Compute the sidereal positions for one request.

        Raises:
            MissingField: date, time or location absent or empty
            UnsupportedLocation: location not in the city table
            InvalidFormat: date or time parts are not integers
        """
        if not req.date or not req.time or not req.location:
            raise MissingField()

        coords = self.cities.lookup(req.location)
        if coords is None:
            raise UnsupportedLocation(detail=req.location)

        year, month, day = parse_date(req.date)
        utc_hour = parse_time(req.time)

        jd = self.ephemeris.julian_day(year, month, day, utc_hour)
        positions = self.compute_positions(jd)

        return HoroscopeResponse(
            input=RequestEcho(date=req.date, time=req.time, location=req.location),
            coordinates=CoordinatesOut(**coords.as_dict()),
            julian_day=jd,
            sidereal_positions=positions,
        )

    def compute_positions(self, jd: float) -> List[PositionOut]:
        """Positions for every body that computes, followed by Ketu when Rahu is present."""
        positions = []
        skipped = []

        # Sidereal mode is global to Swiss Ephemeris; set and use it atomically
        with self.ephemeris.lock:
            self.ephemeris.set_sidereal_mode(swe.SIDM_LAHIRI, 0, 0)
            for body in self.bodies:
                try:
                    positions.append(self._position(jd, body))
                except EphemerisError as e:
                    skipped.append(body.name)
                    business_logger.body_skipped(body.name, jd, str(e))
                    metrics.record_body_skipped(body.name)

        rahu = next((p for p in positions if p.planet == RAHU), None)
        if rahu is not None:
            positions.append(derive_ketu(rahu))

        logger.debug(f"Computed {len(positions)} positions at JD {jd}, skipped {skipped}")
        return positions

    def _position(self, jd: float, body: Body) -> PositionOut:
        ecliptic = self.ephemeris.calc_position(jd, body.id, SIDEREAL_FLAGS)
        speed = ecliptic.get("speed")

        if self.include_equatorial:
            equatorial = self.ephemeris.calc_position(jd, body.id, EQUATORIAL_FLAGS)
        else:
            equatorial = {}

        fmt = self.zero_as_unavailable
        return PositionOut(
            planet=body.name,
            longitude=format_value(ecliptic.get("longitude"), fmt),
            speed=format_value(speed, fmt),
            retrograde=speed is not None and speed < 0,
            right_ascension=format_value(equatorial.get("rectascension"), fmt),
            declination=format_value(equatorial.get("declination"), fmt),
        )
