# backend/stability_factors/climatic/climate_zone.py
from typing import Optional

from ..models import Climate


ROOT_COHESION_KPA = {
    "dense": 15.0,
    "moderate": 8.0,
    "sparse": 3.0,
    "minimal": 0.0,
}


def _average(temp: float, temp_max: Optional[float], temp_min: Optional[float]) -> float:
    high = temp if temp_max is None else temp_max
    low = temp if temp_min is None else temp_min
    return (high + low) / 2


def classify(lat: float, temp: float, temp_max: Optional[float] = None,
             temp_min: Optional[float] = None, rain_7day: float = 0.0) -> Climate:
    """
    Simplified climate zone for a point.

    Latitude bands are checked first, then the daily mean temperature;
    the first matching zone wins. Missing daily extremes fall back to the
    current temperature.
    """
    abs_lat = abs(lat)
    avg_temp = _average(temp, temp_max, temp_min)
    high = temp if temp_max is None else temp_max

    if abs_lat > 66:
        return Climate(zone="Polar", vegetation="minimal", permafrost=temp < 0)
    if abs_lat > 60:
        return Climate(zone="Subarctic", vegetation="sparse", permafrost=temp < -5)
    if avg_temp < 0:
        return Climate(zone="Cold", vegetation="moderate")
    if avg_temp > 18 and rain_7day > 50:
        return Climate(zone="Tropical", vegetation="dense")
    if avg_temp > 18:
        return Climate(zone="Arid/Semi-arid", vegetation="sparse")
    if high > 22:
        return Climate(zone="Temperate", vegetation="moderate")
    return Climate(zone="Continental", vegetation="moderate")


def root_cohesion(vegetation: str) -> float:
    """Additional cohesion (kPa) contributed by roots for a vegetation density."""
    return ROOT_COHESION_KPA.get(vegetation, 0.0)
