import logging
import math
from typing import Dict, List, Sequence

import requests

import config

logger = logging.getLogger(__name__)

OFFSET = 0.003  # ~330 meters
METERS_PER_DEG_LAT = 111320.0

FALLBACK_TOPOGRAPHY = {"elevation": 0.0, "slope": 0.0, "aspect": 0.0}


def sample_points(lat: float, lng: float) -> List[tuple]:
    """Center, north, south, east, west."""
    return [
        (lat, lng),
        (lat + OFFSET, lng),
        (lat - OFFSET, lng),
        (lat, lng + OFFSET),
        (lat, lng - OFFSET),
    ]


def derive_topography(lat: float, elevations: Sequence[float]) -> Dict:
    """
    Slope and aspect from a 5-point elevation cross using central differences.

    Returns:
        {
            elevation,  # center elevation (m)
            slope,      # degrees, 2 dp
            aspect,     # compass bearing of the downslope direction (deg)
            is_water    # True when every sample is exactly sea level
        }
    """
    if len(elevations) < 5:
        raise ValueError(f"Expected 5 elevation samples, got {len(elevations)}")

    h0, hn, hs, he, hw = (float(e) for e in elevations[:5])

    if all(e == 0 for e in (h0, hn, hs, he, hw)):
        return {"elevation": 0.0, "slope": 0.0, "aspect": 0.0, "is_water": True}

    meters_per_deg_lon = METERS_PER_DEG_LAT * math.cos(math.radians(lat))
    dist_y = OFFSET * METERS_PER_DEG_LAT
    dist_x = OFFSET * meters_per_deg_lon

    dzdx = (he - hw) / (2 * dist_x)
    dzdy = (hn - hs) / (2 * dist_y)

    slope_deg = math.degrees(math.atan(math.sqrt(dzdx ** 2 + dzdy ** 2)))

    if dzdx == 0 and dzdy == 0:
        aspect = 0.0
    else:
        aspect = (math.degrees(math.atan2(-dzdx, -dzdy)) + 360.0) % 360.0

    return {
        "elevation": h0,
        "slope": round(slope_deg, 2),
        "aspect": round(aspect, 1),
        "is_water": False,
    }


def calculate_topography(lat: float, lng: float) -> Dict:
    """
    Elevation, slope and aspect for a point from one batched Open-Meteo
    elevation call. Never raises; failures return FALLBACK_TOPOGRAPHY.
    """
    points = sample_points(lat, lng)
    params = {
        "latitude": ",".join(str(p[0]) for p in points),
        "longitude": ",".join(str(p[1]) for p in points),
    }
    try:
        resp = requests.get(config.OPEN_METEO_ELEVATION_URL, params=params, timeout=config.ELEVATION_TIMEOUT)
        resp.raise_for_status()
        elevations = resp.json().get("elevation") or []
        return derive_topography(lat, elevations)
    except Exception as e:
        logger.warning(f"Elevation fetch failed for {lat}, {lng}: {e}")
        return dict(FALLBACK_TOPOGRAPHY)
