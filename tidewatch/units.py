"""
Unit conversions for water and wave measurements.

Upstream feeds report metric units (degC, m, m/s, ft3/s). Display code works
in US customary units, so every conversion here has an inverse and all are
pure functions.
"""

import math

from tidewatch.data.observations import Observation

GALLONS_PER_CUBIC_FOOT = 7.48052
FEET_PER_METER = 3.28084

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


def cfs_to_gallons_per_second(cubic_feet: float) -> float:
    """Convert discharge in cubic feet per second to gallons per second."""
    return cubic_feet * GALLONS_PER_CUBIC_FOOT


def gallons_per_second_to_cfs(gallons: float) -> float:
    return gallons / GALLONS_PER_CUBIC_FOOT


def meters_to_feet(meters: float) -> float:
    return meters * FEET_PER_METER


def feet_to_meters(feet: float) -> float:
    return feet / FEET_PER_METER


def degrees_to_compass(degrees: float) -> str:
    """
    Convert a bearing in degrees to a 16-point compass label.

    Halfway bearings round up (11.25 -> NNE). Negative and >360 bearings wrap.

    Raises:
        ValueError: If degrees is NaN
    """
    index = math.floor(degrees / 22.5 + 0.5) % 16
    return COMPASS_POINTS[index]


# ---------------------------------------------------------------------------
# Observation-aware helpers
# ---------------------------------------------------------------------------

def temperature_fahrenheit(obs: Observation) -> float:
    """Water temperature in Fahrenheit; only degC readings are converted."""
    if obs.unit == "degC":
        return celsius_to_fahrenheit(obs.value)
    return obs.value


def wave_height_feet(obs: Observation) -> float:
    """Wave height in feet; only metre readings are converted."""
    if obs.unit == "m":
        return meters_to_feet(obs.value)
    return obs.value


def wave_height_category(obs: Observation) -> str:
    feet = wave_height_feet(obs)
    if feet < 1:
        return "calm"
    if feet < 3:
        return "moderate"
    if feet < 5:
        return "large"
    return "very large"


def water_temperature_category(obs: Observation) -> str:
    fahrenheit = temperature_fahrenheit(obs)
    if fahrenheit < 50:
        return "cold"
    if fahrenheit < 65:
        return "cool"
    if fahrenheit < 75:
        return "warm"
    return "hot"
