# config.py
import os

from dotenv import load_dotenv

load_dotenv()


SERVICE_INFO = {
    "service": "Landslide Risk Prediction API",
    "model": "Infinite-slope Mohr-Coulomb with depth-calibrated soil strength",
    "disclaimer": "Prediction model – not a deterministic guarantee",
}

PORT = int(os.getenv("PORT", 5000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma-separated, no trailing slashes
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

OPEN_METEO_FORECAST_URL = os.getenv("OPEN_METEO_FORECAST_URL", "https://api.open-meteo.com/v1/forecast")
OPEN_METEO_ELEVATION_URL = os.getenv("OPEN_METEO_ELEVATION_URL", "https://api.open-meteo.com/v1/elevation")

WEATHER_TIMEOUT = float(os.getenv("WEATHER_TIMEOUT", 10))
ELEVATION_TIMEOUT = float(os.getenv("ELEVATION_TIMEOUT", 10))

DEFAULT_DEPTH_M = float(os.getenv("DEFAULT_DEPTH_M", 2.5))
