# backend/stability_factors/slope_stability.py
"""
Slope Stability Engine
Infinite-slope Mohr-Coulomb analysis on a shallow failure plane.

Pipeline:
    1. sanitize raw features (defaults for missing / non-finite values)
    2. environment short-circuits (water, ice, permafrost, snow)
    3. soil texture + depth-calibrated strength + root cohesion
    4. normal / shear stress, infiltration and pore pressure -> Factor of Safety
    5. slope-band x FoS-band probability with rainfall amplifiers
    6. risk level
    7. human-readable reasoning
"""

import dataclasses
import logging
import math
from typing import Any, Callable, Dict, Optional, Tuple

from .climatic import climate_zone
from .environmental import soil_texture
from .models import Climate, Features, RiskVerdict
from .physical_terrain import strength_table

logger = logging.getLogger(__name__)


# --------------------------------------------------
# CALIBRATION CONSTANTS
# --------------------------------------------------

DEFAULT_DEPTH_M = 2.5
DEFAULT_CLAY = 30.0
DEFAULT_SAND = 40.0
DEFAULT_BULK_DENSITY = 140.0   # cg/cm3
DEFAULT_ORGANIC_CARBON = 15.0  # dg/kg
DEFAULT_PH = 6.5
DEFAULT_TEMPERATURE = 15.0

GRAVITY = 9.81

STABLE_FOS = 15.0
WATER_FOS = 99.9

SNOW_WEATHER_CODES = frozenset({71, 73, 75, 77, 85, 86})

# (upper slope bound in degrees, ((FoS threshold, probability), ...), probability otherwise)
PROBABILITY_BANDS: Tuple[Tuple[float, Tuple[Tuple[float, float], ...], float], ...] = (
    (15.0, ((1.0, 0.60), (1.5, 0.25)), 0.05),
    (30.0, ((1.0, 0.90), (1.3, 0.70), (1.7, 0.35)), 0.10),
    (math.inf, ((1.0, 0.98), (1.2, 0.85), (1.5, 0.55)), 0.20),
)

INTENSE_RAIN_MM_HR = 30.0
INTENSE_RAIN_FACTOR = 1.4
SATURATED_7DAY_MM = 150.0
SATURATED_FACTOR = 1.3
MAX_PROBABILITY = 0.99

MAX_MANUAL_RAIN_MM = 500.0

LEVELS: Tuple[Tuple[float, str], ...] = (
    (0.75, "Extreme"),
    (0.50, "High"),
    (0.25, "Medium"),
)

REASON_SEPARATOR = " | "


# --------------------------------------------------
# 1. SANITIZE
# --------------------------------------------------

def _finite(value: Any, default: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default


def _sanitize(features: Features) -> Dict[str, Any]:
    clay = _finite(features.clay, DEFAULT_CLAY)
    sand = _finite(features.sand, DEFAULT_SAND)
    silt = _finite(features.silt, max(0.0, 100.0 - clay - sand))

    depth = _finite(features.depth, DEFAULT_DEPTH_M)
    if depth <= 0:
        depth = DEFAULT_DEPTH_M

    temperature = _finite(features.temperature, DEFAULT_TEMPERATURE)

    return {
        "lat": _finite(features.latitude, 0.0),
        "lng": _finite(features.longitude, 0.0),
        "rain_current": _finite(features.rain_current, 0.0),
        "rain_7day": _finite(features.rain_7day, 0.0),
        "slope": _finite(features.slope, 0.0),
        "elevation": _finite(features.elevation, 0.0),
        "temperature": temperature,
        "temp_max": _finite(features.temp_max, temperature),
        "temp_min": _finite(features.temp_min, temperature),
        "weather_code": int(_finite(features.weather_code, 0.0)),
        "is_water": bool(features.is_water),
        "clay": clay,
        "sand": sand,
        "silt": silt,
        "bulk_density": _finite(features.bulk_density, DEFAULT_BULK_DENSITY),
        "organic_carbon": _finite(features.organic_carbon, DEFAULT_ORGANIC_CARBON),
        "ph": _finite(features.ph, DEFAULT_PH),
        "depth": depth,
    }


def apply_manual_rainfall(features: Features, manual_rain: Any) -> Features:
    """
    Rainfall simulation mode.

    Replaces the live rainfall with the override and approximates the 7-day
    total as 7x the override. The returned features are flagged simulated.
    Overrides are clamped to [0, MAX_MANUAL_RAIN_MM]. Non-numeric overrides
    leave the features untouched.
    """
    if manual_rain is None or isinstance(manual_rain, bool):
        return features
    try:
        rain = float(manual_rain)
    except (TypeError, ValueError):
        return features
    if not math.isfinite(rain):
        return features

    rain = min(max(0.0, rain), MAX_MANUAL_RAIN_MM)
    return dataclasses.replace(features, rain_current=rain, rain_7day=rain * 7, simulated=True)


def _classify_climate(s: Dict[str, Any]) -> Climate:
    return climate_zone.classify(s["lat"], s["temperature"], s["temp_max"], s["temp_min"], s["rain_7day"])


# --------------------------------------------------
# 2. ENVIRONMENT SHORT-CIRCUITS
# --------------------------------------------------

def _fixed_details(fos: float, probability_pct: float, depth: float) -> Dict[str, float]:
    return {
        "FoS": fos,
        "probability_pct": probability_pct,
        "cohesion_kpa": 0.0,
        "friction_angle_deg": 0.0,
        "shear_strength_kpa": 0.0,
        "shear_stress_kpa": 0.0,
        "pore_pressure_pct": 0.0,
        "saturation_pct": 0.0,
        "infiltration_rate_mm_hr": 0.0,
        "root_cohesion_kpa": 0.0,
        "depth_m": depth,
    }


def _water_verdict(s: Dict[str, Any], reason: str) -> RiskVerdict:
    return RiskVerdict(
        level="Safe",
        reason=reason,
        environment="Water Body",
        soil_type="Water",
        details=_fixed_details(WATER_FOS, 0.0, s["depth"]),
    )


def _sea_level_flat(s: Dict[str, Any], climate: Climate) -> Optional[RiskVerdict]:
    if s["slope"] == 0 and s["elevation"] == 0:
        return _water_verdict(s, "Flat terrain at sea level: open water or ocean surface, no slope to fail")
    return None


def _ice(s: Dict[str, Any], climate: Climate) -> Optional[RiskVerdict]:
    if s["temperature"] <= 0:
        return RiskVerdict(
            level="High",
            reason=(
                f"Sub-zero temperature ({s['temperature']:.1f}°C): ice detected. "
                "Freeze-thaw cycles and ice lenses weaken the slope surface"
            ),
            environment="Ice Detected",
            soil_type="Frozen Ground",
            details=_fixed_details(0.9, 85.0, s["depth"]),
        )
    return None


def _water_body(s: Dict[str, Any], climate: Climate) -> Optional[RiskVerdict]:
    if s["is_water"] or s["elevation"] < -5:
        return _water_verdict(s, "Location is on a water body: no soil slope to evaluate")
    return None


def _permafrost(s: Dict[str, Any], climate: Climate) -> Optional[RiskVerdict]:
    if not (climate.permafrost or s["temperature"] < -10):
        return None
    thawing = s["temperature"] > -2 and s["rain_current"] > 0
    if thawing:
        return RiskVerdict(
            level="High",
            reason="Permafrost thaw risk: near-freezing temperature with active rainfall saturates the active layer",
            environment="Permafrost (Thaw Risk)",
            soil_type="Permafrost",
            details=_fixed_details(0.8, 80.0, s["depth"]),
        )
    return RiskVerdict(
        level="Low",
        reason="Stable permafrost: frozen ground bonds the soil mass",
        environment="Permafrost (Stable)",
        soil_type="Permafrost",
        details=_fixed_details(3.0, 10.0, s["depth"]),
    )


def _snow(s: Dict[str, Any], climate: Climate) -> Optional[RiskVerdict]:
    snowing = s["weather_code"] in SNOW_WEATHER_CODES or (s["temperature"] < 2 and s["rain_current"] > 0)
    if not (snowing and s["slope"] > 20):
        return None
    if s["slope"] > 35:
        return RiskVerdict(
            level="Extreme",
            reason=f"Snow on a {s['slope']:.1f}° slope: avalanche and snow-loaded slope failure risk",
            environment="Snow Covered Slope",
            soil_type="Snow Cover",
            details=_fixed_details(0.7, 90.0, s["depth"]),
        )
    return RiskVerdict(
        level="High",
        reason=f"Snow on a {s['slope']:.1f}° slope: snow loading and meltwater reduce stability",
        environment="Snow Covered Slope",
        soil_type="Snow Cover",
        details=_fixed_details(1.1, 65.0, s["depth"]),
    )


ENVIRONMENT_RULES: Tuple[Callable[[Dict[str, Any], Climate], Optional[RiskVerdict]], ...] = (
    _sea_level_flat,
    _ice,
    _water_body,
    _permafrost,
    _snow,
)


# --------------------------------------------------
# 3-4. STRENGTH AND STRESS
# --------------------------------------------------

def compute_mechanics(slope_deg: float, depth_m: float, bulk_density: float,
                      cohesion_kpa: float, friction_angle_deg: float,
                      clay: float, sand: float, silt: float,
                      rain_current: float, rain_7day: float) -> Dict[str, float]:
    """
    Mohr-Coulomb infinite slope quantities (unrounded).

    Args:
        slope_deg: Slope angle in degrees
        depth_m: Failure plane depth in meters
        bulk_density: Bulk density in cg/cm3 (165 -> 1.65 g/cm3)
        cohesion_kpa: Total cohesion including root reinforcement
        friction_angle_deg: Internal friction angle in degrees
        clay, sand, silt: Soil composition percentages
        rain_current: Current rainfall (mm)
        rain_7day: 7-day cumulative rainfall (mm)

    Returns:
        Dictionary of stresses (kPa), infiltration terms and the FoS
    """
    gamma = (bulk_density / 100.0) * GRAVITY
    beta = slope_deg * math.pi / 180.0
    phi = friction_angle_deg * math.pi / 180.0

    sigma = gamma * depth_m * math.cos(beta) ** 2
    tau_driving = gamma * depth_m * math.sin(beta) * math.cos(beta)

    infiltration_rate = 0.30 * sand + 0.10 * silt + 0.02 * clay
    intensity = rain_current * 10
    excess = max(0.0, intensity - infiltration_rate)
    antecedent = min(rain_7day / 150.0, 1.0)

    pore_ratio = 0.5 * antecedent + min(excess / 20.0, 0.5) + 0.3 * (clay / 100.0)
    pore_ratio = max(0.0, min(pore_ratio, 0.6))
    pore_pressure = sigma * pore_ratio
    if not math.isfinite(pore_pressure):
        pore_pressure = 0.0

    sigma_eff = max(0.0, sigma - pore_pressure)
    tau_resisting = cohesion_kpa + sigma_eff * math.tan(phi)

    try:
        fos = tau_resisting / (tau_driving + 0.01)
    except ZeroDivisionError:
        fos = STABLE_FOS
    if not math.isfinite(fos):
        fos = STABLE_FOS

    return {
        "unit_weight": gamma,
        "sigma": sigma,
        "tau_driving": tau_driving,
        "infiltration_rate": infiltration_rate,
        "intensity": intensity,
        "excess": excess,
        "antecedent": antecedent,
        "pore_pressure": pore_pressure,
        "sigma_eff": sigma_eff,
        "tau_resisting": tau_resisting,
        "fos": fos,
    }


# --------------------------------------------------
# 5-6. PROBABILITY AND LEVEL
# --------------------------------------------------

def failure_probability(slope_deg: float, fos: float, intensity: float, rain_7day: float) -> Tuple[float, float]:
    """Returns (fos, probability). Near-flat ground pins FoS to the stable sentinel."""
    if slope_deg < 5:
        return STABLE_FOS, 0.0

    probability = 0.0
    for upper, thresholds, otherwise in PROBABILITY_BANDS:
        if slope_deg < upper:
            probability = otherwise
            for limit, p in thresholds:
                if fos < limit:
                    probability = p
                    break
            break

    if intensity > INTENSE_RAIN_MM_HR:
        probability = min(probability * INTENSE_RAIN_FACTOR, MAX_PROBABILITY)
    if rain_7day > SATURATED_7DAY_MM:
        probability = min(probability * SATURATED_FACTOR, MAX_PROBABILITY)

    return fos, probability


def risk_level(probability: float) -> str:
    for threshold, level in LEVELS:
        if probability > threshold:
            return level
    return "Low"


# --------------------------------------------------
# 7. REASONING
# --------------------------------------------------

def _build_reason(s: Dict[str, Any], texture: str, mech: Dict[str, float],
                  root_kpa: float, fos: float) -> str:
    factors = []

    slope = s["slope"]
    if slope < 5:
        factors.append(f"Gentle terrain ({slope:.1f}°)")
    elif slope < 15:
        factors.append(f"Moderate slope ({slope:.1f}°)")
    elif slope < 30:
        factors.append(f"Steep slope ({slope:.1f}°)")
    else:
        factors.append(f"Very steep slope ({slope:.1f}°)")

    factors.append(
        f"{texture} soil (clay {s['clay']:.0f}%, sand {s['sand']:.0f}%, silt {s['silt']:.0f}%)"
    )

    if s["clay"] > 35 and s["rain_7day"] > 50:
        factors.append("Clay-rich soil holding recent rainfall raises pore pressure")
    elif s["clay"] > 35:
        factors.append("Clay-rich soil drains slowly")
    elif s["sand"] > 50 and mech["excess"] > 0:
        factors.append("Rainfall intensity exceeds the sandy soil's infiltration rate")

    rain_7day = s["rain_7day"]
    if rain_7day > 150:
        rain_text = f"Extreme 7-day rainfall ({rain_7day:.0f} mm)"
    elif rain_7day > 75:
        rain_text = f"Heavy 7-day rainfall ({rain_7day:.0f} mm)"
    elif rain_7day > 25:
        rain_text = f"Moderate 7-day rainfall ({rain_7day:.0f} mm)"
    else:
        rain_text = f"Low recent rainfall ({rain_7day:.0f} mm over 7 days)"
    if mech["intensity"] > INTENSE_RAIN_MM_HR:
        rain_text += f" with intense current rainfall ({mech['intensity']:.0f} mm/hr)"
    factors.append(rain_text)

    if root_kpa > 10:
        factors.append(f"Dense vegetation root reinforcement (+{root_kpa:.0f} kPa)")

    if fos < 1.0:
        factors.append(f"FoS {fos:.2f} below 1.0: slope failure predicted")
    elif fos < 1.3:
        factors.append(f"FoS {fos:.2f}: marginal stability")
    elif fos < 1.7:
        factors.append(f"FoS {fos:.2f}: moderately stable")
    else:
        factors.append(f"FoS {fos:.2f}: stable")

    return REASON_SEPARATOR.join(factors)


# --------------------------------------------------
# ENGINE
# --------------------------------------------------

class SlopeStabilityEngine:

    @staticmethod
    def _texture(s: Dict[str, Any]) -> str:
        try:
            return soil_texture.classify(s["clay"], s["sand"], s["silt"])
        except soil_texture.InvalidInput as e:
            logger.warning(f"Invalid soil composition, using defaults: {e}")
            s["clay"] = DEFAULT_CLAY
            s["sand"] = DEFAULT_SAND
            s["silt"] = max(0.0, 100.0 - DEFAULT_CLAY - DEFAULT_SAND)
            return soil_texture.classify(s["clay"], s["sand"], s["silt"])

    @classmethod
    def evaluate(cls, features: Features, manual_rain: Any = None) -> RiskVerdict:
        """
        Risk verdict for one point. Never raises.

        Args:
            features: Raw site features
            manual_rain: Optional rainfall override (mm) for simulation mode

        Returns:
            RiskVerdict with level, reasoning and the numeric detail bundle
        """
        # Climate comes from the observed conditions, never the simulated rainfall
        climate = features.climate or _classify_climate(_sanitize(features))

        features = apply_manual_rainfall(features, manual_rain)
        s = _sanitize(features)

        for rule in ENVIRONMENT_RULES:
            verdict = rule(s, climate)
            if verdict is not None:
                logger.debug(f"Short-circuit {rule.__name__} at ({s['lat']}, {s['lng']}): {verdict.level}")
                return dataclasses.replace(verdict, climate=climate, simulated=features.simulated)

        texture = cls._texture(s)
        row = strength_table.lookup(s["depth"])
        root_kpa = climate_zone.root_cohesion(climate.vegetation)
        cohesion = row.cohesion_kpa + root_kpa

        mech = compute_mechanics(
            slope_deg=s["slope"],
            depth_m=s["depth"],
            bulk_density=s["bulk_density"],
            cohesion_kpa=cohesion,
            friction_angle_deg=row.friction_angle_deg,
            clay=s["clay"],
            sand=s["sand"],
            silt=s["silt"],
            rain_current=s["rain_current"],
            rain_7day=s["rain_7day"],
        )

        fos, probability = failure_probability(s["slope"], mech["fos"], mech["intensity"], s["rain_7day"])
        level = risk_level(probability)

        pore_pct = (mech["pore_pressure"] / mech["sigma"] * 100.0) if mech["sigma"] > 0 else 0.0

        details = {
            "FoS": round(fos, 2),
            "probability_pct": round(probability * 100, 1),
            "cohesion_kpa": round(cohesion, 1),
            "friction_angle_deg": round(row.friction_angle_deg, 1),
            "shear_strength_kpa": round(mech["tau_resisting"], 2),
            "shear_stress_kpa": round(mech["tau_driving"], 2),
            "pore_pressure_pct": round(pore_pct, 1),
            "saturation_pct": round(mech["antecedent"] * 100, 1),
            "infiltration_rate_mm_hr": round(mech["infiltration_rate"], 2),
            "root_cohesion_kpa": round(root_kpa, 1),
            "depth_m": round(s["depth"], 2),
            "normal_stress_kpa": round(mech["sigma"], 2),
            "effective_stress_kpa": round(mech["sigma_eff"], 2),
            "unit_weight_kn_m3": round(mech["unit_weight"], 2),
            "rainfall_intensity_mm_hr": round(mech["intensity"], 1),
        }

        logger.debug(
            f"Slope stability at ({s['lat']}, {s['lng']}): FoS={details['FoS']} "
            f"p={details['probability_pct']}% level={level}"
        )

        return RiskVerdict(
            level=level,
            reason=_build_reason(s, texture, mech, root_kpa, fos),
            environment=climate.zone,
            soil_type=texture,
            details=details,
            climate=climate,
            simulated=features.simulated,
        )


def evaluate(features: Features, manual_rain: Any = None) -> RiskVerdict:
    return SlopeStabilityEngine.evaluate(features, manual_rain=manual_rain)
