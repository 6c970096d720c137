"""
Data providers for the landslide engine.
Weather and elevation come from Open-Meteo; soil is a regional estimate.
"""

from .weather_adapter import fetch_weather, FALLBACK_WEATHER
from .terrain_adapter import calculate_topography, FALLBACK_TOPOGRAPHY
from .soil_adapter import get_soil_composition

__all__ = [
    "fetch_weather",
    "FALLBACK_WEATHER",
    "calculate_topography",
    "FALLBACK_TOPOGRAPHY",
    "get_soil_composition",
]
