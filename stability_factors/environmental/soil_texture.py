# backend/stability_factors/environmental/soil_texture.py
"""
USDA soil texture triangle.

The rules are evaluated top to bottom and the first match wins; later rules
assume every earlier one has already failed, so the order is significant.
"""

from typing import Callable, Optional, Tuple


UNKNOWN = "Unknown"


class InvalidInput(ValueError):
    """Raised when a soil composition component is negative."""


# --------------------------------------------------
# TEXTURE RULES (PRIORITY ORDER)
# --------------------------------------------------

def _clay_family(clay: float, sand: float, silt: float) -> Optional[str]:
    if clay < 40:
        return None
    if silt >= 40:
        return "Silty Clay"
    if sand <= 45:
        return "Clay"
    return "Silty Clay"


def _sandy_clay(clay: float, sand: float, silt: float) -> Optional[str]:
    if clay >= 35 and sand >= 45:
        return "Sandy Clay"
    return None


def _clay_loam_family(clay: float, sand: float, silt: float) -> Optional[str]:
    if clay < 27:
        return None
    if sand <= 20:
        return "Silty Clay Loam"
    if sand <= 45:
        return "Clay Loam"
    return "Sandy Clay Loam"


def _loam_family(clay: float, sand: float, silt: float) -> Optional[str]:
    if clay < 20:
        return None
    if silt >= 50:
        return "Silt Loam"
    if sand > 45 and silt < 28:
        return "Sandy Clay Loam"
    return "Loam"


def _silt(clay: float, sand: float, silt: float) -> Optional[str]:
    if silt >= 80 and clay < 12:
        return "Silt"
    return None


def _silt_loam(clay: float, sand: float, silt: float) -> Optional[str]:
    if silt >= 50:
        return "Silt Loam"
    return None


def _sands(clay: float, sand: float, silt: float) -> Optional[str]:
    if silt + 1.5 * clay < 15:
        return "Sand"
    if silt + 2 * clay < 30:
        return "Loamy Sand"
    return None


def _sandy_loam(clay: float, sand: float, silt: float) -> Optional[str]:
    if sand > 52 or (clay < 7 and silt < 50):
        return "Sandy Loam"
    return None


TEXTURE_RULES: Tuple[Callable[[float, float, float], Optional[str]], ...] = (
    _clay_family,
    _sandy_clay,
    _clay_loam_family,
    _loam_family,
    _silt,
    _silt_loam,
    _sands,
    _sandy_loam,
)


def normalize_composition(clay: float, sand: float, silt: float) -> Optional[Tuple[float, float, float]]:
    """Scales the three fractions to sum to 100. Returns None for an empty sample."""
    total = clay + sand + silt
    if total <= 0:
        return None
    factor = 100.0 / total
    return clay * factor, sand * factor, silt * factor


def classify(clay_pct: float, sand_pct: float, silt_pct: float) -> str:
    """
    Returns the USDA texture label for a clay/sand/silt composition.

    Args:
        clay_pct: Clay percentage
        sand_pct: Sand percentage
        silt_pct: Silt percentage

    Raises:
        InvalidInput: if any component is negative
    """
    for name, value in (("clay", clay_pct), ("sand", sand_pct), ("silt", silt_pct)):
        if value < 0:
            raise InvalidInput(f"{name} percentage cannot be negative: {value}")

    normalized = normalize_composition(float(clay_pct), float(sand_pct), float(silt_pct))
    if normalized is None:
        return UNKNOWN

    clay, sand, silt = normalized
    for rule in TEXTURE_RULES:
        label = rule(clay, sand, silt)
        if label is not None:
            return label
    return "Loam"
