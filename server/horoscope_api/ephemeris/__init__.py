from .bodies import BODIES, Body, KETU, RAHU
from .swiss import EQUATORIAL_FLAGS, SIDEREAL_FLAGS, EphemerisError, SwissEphemeris

__all__ = [
    "BODIES", "Body", "KETU", "RAHU",
    "EQUATORIAL_FLAGS", "SIDEREAL_FLAGS", "EphemerisError", "SwissEphemeris",
]
