from typing import Dict, Optional


def _region(lat: float, lon: float) -> str:
    # Kerala Western Ghats (9-13.5°N, 73-78°E)
    if 9 < lat < 13.5 and 73 < lon < 78:
        return "western_ghats" if lon > 75.5 else "kerala_coastal"
    if 8 < lat < 10:
        return "southern_coastal"
    if 17 < lat < 25:
        return "central_black_soil"
    if lat > 24:
        return "northern_alluvial"
    return "tropical_default"


# clay/sand base, spread (seed modulus) and geotechnical defaults per region
REGIONAL_SOILS = {
    "western_ghats": {"clay": (38, 8), "sand": (28, 6), "bulk_density": 145, "organic_carbon": 22, "ph": 5.4, "type": "Laterite"},
    "kerala_coastal": {"clay": (32, 6), "sand": (38, 6), "bulk_density": 140, "organic_carbon": 18, "ph": 5.8, "type": "Coastal Laterite"},
    "southern_coastal": {"clay": (28, 8), "sand": (42, 6), "bulk_density": 138, "organic_carbon": 14, "ph": 6.2, "type": "Coastal Alluvium"},
    "central_black_soil": {"clay": (40, 10), "sand": (20, 6), "bulk_density": 135, "organic_carbon": 10, "ph": 7.8, "type": "Black Cotton Soil"},
    "northern_alluvial": {"clay": (30, 8), "sand": (40, 6), "bulk_density": 148, "organic_carbon": 8, "ph": 7.4, "type": "Alluvium"},
    "tropical_default": {"clay": (35, 8), "sand": (30, 6), "bulk_density": 140, "organic_carbon": 15, "ph": 6.5, "type": "Tropical Soil"},
}


def _clamp_pct(value: float) -> float:
    return min(100.0, max(0.0, value))


def get_soil_composition(lat: float, lon: float, depth: Optional[float] = None) -> Dict:
    """
    Deterministic regional soil estimate for a coordinate.

    The same coordinate always yields the same composition: variation
    within a region is keyed on |lat * lon * 1000| mod 100.

    Returns clay/sand/silt percentages plus bulk density (cg/cm3),
    organic carbon (dg/kg) and pH.
    """
    seed = abs(lat * lon * 1000) % 100
    region = _region(lat, lon)
    profile = REGIONAL_SOILS[region]

    clay_base, clay_spread = profile["clay"]
    sand_base, sand_spread = profile["sand"]
    clay = clay_base + (seed % clay_spread)
    sand = sand_base + (seed % sand_spread)
    silt = max(0.0, 100 - clay - sand)

    # Overburden compaction with depth, capped at the 10 m calibration limit
    bulk_density = profile["bulk_density"] + (seed % 10)
    if depth is not None and depth > 0:
        bulk_density += min(depth, 10.0) * 1.5

    return {
        "clay": round(_clamp_pct(clay), 2),
        "sand": round(_clamp_pct(sand), 2),
        "silt": round(_clamp_pct(silt), 2),
        "bulk_density": round(bulk_density, 1),
        "organic_carbon": profile["organic_carbon"],
        "ph": profile["ph"],
        "region": region,
        "type": profile["type"],
        "source": "Regional Soil Estimation",
    }
