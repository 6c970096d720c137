# backend/stability_factors/models.py
"""
Records passed between the providers, the classifiers and the slope
stability engine. All of them are frozen: nothing here is mutated after
construction, so a single request never leaks state into another.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StrengthRow:
    """One depth bracket [depth_min, depth_max) of the strength calibration."""
    depth_min: float
    depth_max: float
    cohesion_kpa: float
    friction_angle_deg: float
    unit_weight_kn_m3: float

    def contains(self, depth_m: float) -> bool:
        return self.depth_min <= depth_m < self.depth_max


@dataclass(frozen=True)
class Climate:
    zone: str
    vegetation: str
    permafrost: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Features:
    """
    Engine input for a single point.

    Numeric fields may arrive as None or NaN straight from the providers;
    the engine substitutes defaults before using them.
    """
    latitude: float
    longitude: float
    rain_current: Optional[float] = 0.0
    rain_7day: Optional[float] = 0.0
    slope: Optional[float] = 0.0
    elevation: Optional[float] = 0.0
    temperature: Optional[float] = 15.0
    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    humidity: Optional[float] = None
    weather_code: Optional[int] = 0
    is_water: bool = False
    aspect: Optional[float] = 0.0
    clay: Optional[float] = None
    sand: Optional[float] = None
    silt: Optional[float] = None
    bulk_density: Optional[float] = None
    organic_carbon: Optional[float] = None
    ph: Optional[float] = None
    depth: Optional[float] = 2.5
    climate: Optional[Climate] = None
    simulated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["climate"] = self.climate.to_dict() if self.climate else None
        return data


@dataclass(frozen=True)
class RiskVerdict:
    level: str
    reason: str
    environment: str
    soil_type: str
    details: Dict[str, float] = field(default_factory=dict)
    climate: Optional[Climate] = None
    simulated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_level": self.level,
            "reason": self.reason,
            "environment": self.environment,
            "soil_type": self.soil_type,
            "details": dict(self.details),
            "climate": self.climate.to_dict() if self.climate else None,
            "isSimulated": self.simulated,
        }
