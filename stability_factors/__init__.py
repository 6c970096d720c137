"""
Landslide risk scoring engine.
Depth-calibrated strength, soil texture, climate zone and Mohr-Coulomb slope stability.
"""

from .models import Climate, Features, RiskVerdict, StrengthRow
from .slope_stability import SlopeStabilityEngine, apply_manual_rainfall, evaluate

__all__ = [
    "Climate",
    "Features",
    "RiskVerdict",
    "StrengthRow",
    "SlopeStabilityEngine",
    "apply_manual_rainfall",
    "evaluate",
]
