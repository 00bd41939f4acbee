import logging
import os
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional

import yaml

logger = logging.getLogger(__name__)


class Coordinates(NamedTuple):
    lat: float
    lon: float

    def as_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}


BUILTIN_CITIES = {
    "delhi": Coordinates(28.6139, 77.2090),
    "mumbai": Coordinates(19.0760, 72.8777),
    "chennai": Coordinates(13.0827, 80.2707),
    "kolkata": Coordinates(22.5726, 88.3639),
    "bengaluru": Coordinates(12.9716, 77.5946),
    "hyderabad": Coordinates(17.3850, 78.4867),
    "pune": Coordinates(18.5204, 73.8567),
}


class CityTable:
    """
    Immutable lowercase city name -> coordinates lookup.

    Keys are normalized with ``str.lower`` on construction and lookups
    normalize the same way, so "Delhi" and "delhi" resolve identically.
    """

    def __init__(self, cities: Mapping[str, Coordinates]):
        self._cities = MappingProxyType({name.lower(): coords for name, coords in cities.items()})

    def lookup(self, location: str) -> Optional[Coordinates]:
        return self._cities.get(location.lower())

    def __len__(self) -> int:
        return len(self._cities)

    @property
    def names(self):
        return sorted(self._cities)


def load_city_table(path: Optional[str]) -> CityTable:
    """
    Load the city table from a YAML file.

    The file maps city names to ``{lat: ..., lon: ...}``. When the file does
    not exist the built-in Indian city table is used.

    Raises:
        ValueError: if the file exists but is not a valid city mapping
    """
    if not path or not os.path.exists(path):
        logger.info(f"City table {path} not found, using built-in table")
        return CityTable(BUILTIN_CITIES)

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in city table {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"City table {path} must map city names to coordinates")

    cities = {}
    for name, entry in data.items():
        try:
            lat = float(entry["lat"])
            lon = float(entry["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid coordinates for city '{name}' in {path}: {e}")
        if not -90 <= lat <= 90 or not -180 <= lon <= 180:
            raise ValueError(f"Coordinates out of range for city '{name}' in {path}")
        cities[str(name)] = Coordinates(lat, lon)

    return CityTable(cities)
