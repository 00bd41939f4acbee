"""Sidereal horoscope API: Lahiri planetary positions for Indian cities."""

__version__ = "1.0.0"
