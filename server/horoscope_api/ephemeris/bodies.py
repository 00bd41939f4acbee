from typing import NamedTuple, Tuple

import swisseph as swe


class Body(NamedTuple):
    id: int
    name: str


# Iteration and output order of the sidereal positions
BODIES: Tuple[Body, ...] = (
    Body(swe.SUN, "Sun"),
    Body(swe.MOON, "Moon"),
    Body(swe.MERCURY, "Mercury"),
    Body(swe.VENUS, "Venus"),
    Body(swe.MARS, "Mars"),
    Body(swe.JUPITER, "Jupiter"),
    Body(swe.SATURN, "Saturn"),
    Body(swe.URANUS, "Uranus"),
    Body(swe.NEPTUNE, "Neptune"),
    Body(swe.PLUTO, "Pluto"),
    Body(swe.MEAN_NODE, "Rahu"),
)

# Ascending node; its opposite point is derived, never computed
RAHU = "Rahu"
KETU = "Ketu"
