import logging
from typing import Any, Dict, Optional

import requests

import config

logger = logging.getLogger(__name__)

# Standard headers to identify the application to Open-Meteo
_HEADERS = {
    "User-Agent": "LandslideRisk/1.0",
    "Accept": "application/json",
}

FALLBACK_WEATHER = {
    "temperature": 15.0,
    "humidity": 50.0,
    "rain_current": 0.0,
    "rain_7day": 0.0,
    "temp_max": 15.0,
    "temp_min": 15.0,
    "wind_speed": 0.0,
    "weather_code": 0,
    "description": "Unavailable",
    "source": "Fallback (weather service unavailable)",
}


def describe_weather_code(code: Optional[int]) -> str:
    """WMO weather interpretation code -> short description."""
    if code is None:
        return "Unknown"
    if code == 0:
        return "Clear Sky"
    if code in (1, 2):
        return "Mainly Clear"
    if code == 3:
        return "Overcast"
    if code in (45, 48):
        return "Fog"
    if code in (51, 53, 55, 56, 57):
        return "Drizzle"
    if code in (61, 63, 65, 66, 67, 80, 81, 82):
        return "Rainy"
    if code in (71, 73, 75, 77, 85, 86):
        return "Snow"
    if code in (95, 96, 99):
        return "Thunderstorm"
    return "Unknown"


def _num(value: Any, default: float = 0.0) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def parse_forecast(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flattens an Open-Meteo forecast payload (current + 7 past days) into the
    weather bundle used for feature assembly.
    """
    current = data["current"]
    daily = data.get("daily") or {}

    precipitation = daily.get("precipitation_sum") or []
    rain_7day = sum(v for v in precipitation[:7] if v is not None)

    temperature = _num(current.get("temperature_2m"), FALLBACK_WEATHER["temperature"])

    # Today is the last entry after the 7 past days
    highs = [v for v in (daily.get("temperature_2m_max") or []) if v is not None]
    lows = [v for v in (daily.get("temperature_2m_min") or []) if v is not None]

    code = current.get("weather_code")
    code = int(code) if code is not None else 0

    return {
        "temperature": temperature,
        "humidity": _num(current.get("relative_humidity_2m"), FALLBACK_WEATHER["humidity"]),
        "rain_current": _num(current.get("precipitation")),
        "rain_7day": round(float(rain_7day), 2),
        "temp_max": float(highs[-1]) if highs else temperature,
        "temp_min": float(lows[-1]) if lows else temperature,
        "wind_speed": _num(current.get("wind_speed_10m")),
        "weather_code": code,
        "description": describe_weather_code(code),
        "source": "Open-Meteo Forecast API",
    }


def fetch_weather(lat: float, lng: float) -> Dict[str, Any]:
    """
    Live weather for a point: current conditions plus 7-day cumulative rainfall.
    Never raises; returns FALLBACK_WEATHER when the service is unreachable.
    """
    params = {
        "latitude": lat,
        "longitude": lng,
        "current": "temperature_2m,relative_humidity_2m,precipitation,weather_code,wind_speed_10m",
        "daily": "precipitation_sum,temperature_2m_max,temperature_2m_min",
        "past_days": 7,
        "forecast_days": 1,
        "timezone": "auto",
    }
    try:
        resp = requests.get(config.OPEN_METEO_FORECAST_URL, params=params, headers=_HEADERS,
                            timeout=config.WEATHER_TIMEOUT)
        resp.raise_for_status()
        return parse_forecast(resp.json() or {})
    except Exception as e:
        logger.warning(f"Weather fetch failed for {lat}, {lng}: {e}")
        return dict(FALLBACK_WEATHER)
