# server/horoscope_api/schemas.py
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

NOT_AVAILABLE = "N/A"


class HoroscopeRequest(BaseModel):
    # Presence is checked by the transformer so that a missing field is a 400
    date: Optional[str] = Field(None, examples=["2024-01-01"])
    time: Optional[str] = Field(None, examples=["12:00"])
    location: Optional[str] = Field(None, examples=["delhi"])


class RequestEcho(BaseModel):
    date: str
    time: str
    location: str


class CoordinatesOut(BaseModel):
    lat: float
    lon: float


class PositionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    planet: str
    longitude: str
    speed: str
    retrograde: bool
    right_ascension: str = Field(alias="rightAscension")
    declination: str


class HoroscopeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: RequestEcho
    coordinates: CoordinatesOut
    julian_day: float = Field(alias="julianDay")
    sidereal_positions: List[PositionOut] = Field(alias="siderealPositions")


class HealthzResponse(BaseModel):
    status: str = "healthy"
    timestamp: Optional[str] = None
    version: Optional[str] = None
    ephemeris: dict
    locations: dict
    metrics: dict


class ErrorOut(BaseModel):
    error: str
