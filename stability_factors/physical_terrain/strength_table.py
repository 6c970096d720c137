# backend/stability_factors/physical_terrain/strength_table.py
"""
Depth-calibrated soil strength (Mohr-Coulomb parameters).

Rows are contiguous, ascending half-open brackets [min, max) spanning 0-10 m.
Depths at or below the bottom of the table are clamped to the deepest row;
anything that matches no row (negative or NaN depth) gets FALLBACK_ROW.
"""

import math
from typing import Tuple

from ..models import StrengthRow


STRENGTH_TABLE: Tuple[StrengthRow, ...] = (
    StrengthRow(depth_min=0.0, depth_max=1.5, cohesion_kpa=35.2, friction_angle_deg=28.1, unit_weight_kn_m3=15.5),
    StrengthRow(depth_min=1.5, depth_max=3.0, cohesion_kpa=31.7, friction_angle_deg=29.9, unit_weight_kn_m3=16.2),
    StrengthRow(depth_min=3.0, depth_max=5.0, cohesion_kpa=28.3, friction_angle_deg=31.0, unit_weight_kn_m3=16.8),
    StrengthRow(depth_min=5.0, depth_max=10.0, cohesion_kpa=25.1, friction_angle_deg=32.2, unit_weight_kn_m3=17.5),
)

# Typical shallow failure plane (1.5-3.0 m)
FALLBACK_ROW: StrengthRow = STRENGTH_TABLE[1]


def lookup(depth_m: float) -> StrengthRow:
    """
    Returns the calibration row for a failure-plane depth in meters.

    Never raises: depths >= 10 m resolve to the deepest row, and negative
    or non-finite depths resolve to FALLBACK_ROW.
    """
    try:
        z = float(depth_m)
    except (TypeError, ValueError):
        return FALLBACK_ROW

    if math.isnan(z):
        return FALLBACK_ROW

    for row in STRENGTH_TABLE:
        if row.contains(z):
            return row

    if z >= STRENGTH_TABLE[-1].depth_max:
        return STRENGTH_TABLE[-1]

    return FALLBACK_ROW
