import math

import pytest

from conftest import make_features
from stability_factors import apply_manual_rainfall, evaluate
from stability_factors.models import Climate
from stability_factors.slope_stability import (
    MAX_MANUAL_RAIN_MM,
    REASON_SEPARATOR,
    STABLE_FOS,
    SlopeStabilityEngine,
    compute_mechanics,
    failure_probability,
    risk_level,
)


DETAIL_KEYS = {
    "FoS", "probability_pct", "cohesion_kpa", "friction_angle_deg",
    "shear_strength_kpa", "shear_stress_kpa", "pore_pressure_pct",
    "saturation_pct", "infiltration_rate_mm_hr", "root_cohesion_kpa", "depth_m",
}


# --- Full pipeline on a monsoon hillside ---

def test_monsoon_hillside_end_to_end():
    verdict = evaluate(make_features())
    d = verdict.details

    assert verdict.level == "Low"
    assert verdict.environment == "Tropical"
    assert verdict.soil_type == "Clay Loam"
    assert verdict.simulated is False

    assert d["cohesion_kpa"] == 46.7
    assert d["root_cohesion_kpa"] == 15.0
    assert d["friction_angle_deg"] == 29.9
    assert d["infiltration_rate_mm_hr"] == 13.2
    assert d["saturation_pct"] == 40.0
    assert d["pore_pressure_pct"] == 60.0
    assert d["depth_m"] == 2.5
    assert d["normal_stress_kpa"] == pytest.approx(33.24, abs=0.01)
    assert d["shear_stress_kpa"] == pytest.approx(15.50, abs=0.01)
    assert d["shear_strength_kpa"] == pytest.approx(54.35, abs=0.01)
    assert d["FoS"] == pytest.approx(3.50, abs=0.01)
    assert d["probability_pct"] == 14.0


def test_details_carry_all_keys():
    assert DETAIL_KEYS <= set(evaluate(make_features()).details)
    assert DETAIL_KEYS <= set(evaluate(make_features(slope=0.0, elevation=0.0)).details)


def test_reason_lists_contributing_factors():
    reason = evaluate(make_features()).reason
    factors = reason.split(REASON_SEPARATOR)

    assert "Steep slope (25.0°)" in factors
    assert "Dense vegetation root reinforcement (+15 kPa)" in factors
    assert "Moderate 7-day rainfall (60 mm) with intense current rainfall (50 mm/hr)" in factors
    assert factors[-1] == "FoS 3.50: stable"
    assert any(f.startswith("Clay Loam soil") for f in factors)


def test_evaluation_is_idempotent():
    features = make_features()
    assert evaluate(features) == evaluate(features)


def test_climate_is_classified_when_not_supplied():
    verdict = evaluate(make_features(climate=None))
    assert verdict.climate.zone == "Tropical"
    assert verdict.climate.vegetation == "dense"
    assert verdict.details["root_cohesion_kpa"] == 15.0


def test_engine_classmethod_matches_module_function():
    features = make_features(slope=38.0, rain_7day=200.0)
    assert SlopeStabilityEngine.evaluate(features) == evaluate(features)


# --- Environment short-circuits ---

def test_flat_sea_level_is_water_body():
    verdict = evaluate(make_features(slope=0.0, elevation=0.0))
    assert verdict.level == "Safe"
    assert verdict.environment == "Water Body"
    assert verdict.details["FoS"] == 99.9
    assert verdict.details["probability_pct"] == 0.0


def test_flat_sea_level_wins_over_ice():
    verdict = evaluate(make_features(slope=0.0, elevation=0.0, temperature=-4.0))
    assert verdict.environment == "Water Body"


def test_ice_wins_over_water_flag():
    verdict = evaluate(make_features(temperature=-1.0, is_water=True))
    assert verdict.level == "High"
    assert verdict.details["FoS"] == 0.9
    assert verdict.details["probability_pct"] == 85.0


def test_water_flag_and_depression():
    assert evaluate(make_features(is_water=True)).level == "Safe"
    assert evaluate(make_features(elevation=-6.0, slope=3.0)).environment == "Water Body"
    assert evaluate(make_features(elevation=-3.0, slope=10.0)).environment != "Water Body"


def test_permafrost_thaw_and_stable():
    frozen = Climate(zone="Subarctic", vegetation="sparse", permafrost=True)

    thawing = evaluate(make_features(temperature=1.0, rain_current=2.0, climate=frozen))
    assert thawing.level == "High"
    assert thawing.details["FoS"] == 0.8
    assert thawing.details["probability_pct"] == 80.0

    stable = evaluate(make_features(temperature=1.0, rain_current=0.0, climate=frozen))
    assert stable.level == "Low"
    assert stable.details["FoS"] == 3.0
    assert stable.details["probability_pct"] == 10.0


def test_snow_on_steep_and_moderate_slopes():
    steep = evaluate(make_features(weather_code=73, temperature=5.0, slope=40.0))
    assert steep.level == "Extreme"
    assert steep.details["FoS"] == 0.7
    assert steep.details["probability_pct"] == 90.0

    moderate = evaluate(make_features(weather_code=73, temperature=5.0, slope=25.0))
    assert moderate.level == "High"
    assert moderate.details["FoS"] == 1.1
    assert moderate.details["probability_pct"] == 65.0


def test_cold_rain_counts_as_snow():
    verdict = evaluate(make_features(weather_code=61, temperature=1.5, rain_current=2.0, slope=30.0))
    assert verdict.environment == "Snow Covered Slope"


def test_snow_on_gentle_slope_falls_through():
    verdict = evaluate(make_features(weather_code=73, temperature=5.0, slope=15.0))
    assert verdict.environment == "Tropical"


def test_short_circuit_carries_climate_and_simulation_flag():
    verdict = evaluate(make_features(slope=0.0, elevation=0.0), manual_rain=10)
    assert verdict.simulated is True
    assert verdict.climate.zone == "Tropical"


# --- Near-flat ground ---

def test_near_flat_ground_is_pinned_stable():
    verdict = evaluate(make_features(slope=3.0, elevation=100.0))
    assert verdict.details["FoS"] == STABLE_FOS
    assert verdict.details["probability_pct"] == 0.0
    assert verdict.level == "Low"


# --- Mechanics ---

def test_pore_pressure_below_cap():
    mech = compute_mechanics(
        slope_deg=30.0, depth_m=2.0, bulk_density=150.0,
        cohesion_kpa=20.0, friction_angle_deg=30.0,
        clay=20.0, sand=40.0, silt=40.0,
        rain_current=0.0, rain_7day=30.0,
    )
    assert mech["infiltration_rate"] == pytest.approx(16.4)
    assert mech["excess"] == 0.0
    assert mech["sigma"] == pytest.approx(22.0725, rel=1e-6)
    assert mech["pore_pressure"] == pytest.approx(22.0725 * 0.16, rel=1e-6)


def test_driving_stress_rises_with_slope():
    previous = -1.0
    for slope in range(5, 46):
        mech = compute_mechanics(
            slope_deg=float(slope), depth_m=2.5, bulk_density=150.0,
            cohesion_kpa=30.0, friction_angle_deg=30.0,
            clay=30.0, sand=40.0, silt=30.0,
            rain_current=0.0, rain_7day=0.0,
        )
        assert mech["tau_driving"] > previous
        previous = mech["tau_driving"]


def test_non_finite_mechanics_fall_back_to_stable():
    nan_cohesion = compute_mechanics(
        slope_deg=25.0, depth_m=2.5, bulk_density=150.0,
        cohesion_kpa=float("nan"), friction_angle_deg=30.0,
        clay=30.0, sand=40.0, silt=30.0,
        rain_current=0.0, rain_7day=0.0,
    )
    assert nan_cohesion["fos"] == STABLE_FOS

    infinite_density = compute_mechanics(
        slope_deg=25.0, depth_m=2.5, bulk_density=math.inf,
        cohesion_kpa=30.0, friction_angle_deg=30.0,
        clay=30.0, sand=40.0, silt=30.0,
        rain_current=5.0, rain_7day=100.0,
    )
    assert infinite_density["pore_pressure"] == 0.0
    assert infinite_density["fos"] == STABLE_FOS


# --- Probability and level ---

@pytest.mark.parametrize(
    "slope, fos, expected",
    [
        (10, 0.9, 0.60), (10, 1.2, 0.25), (10, 2.0, 0.05),
        (20, 0.95, 0.90), (20, 1.25, 0.70), (20, 1.5, 0.35), (20, 1.8, 0.10),
        (30, 0.5, 0.98), (35, 1.1, 0.85), (35, 1.4, 0.55), (35, 2.0, 0.20),
    ],
)
def test_probability_bands(slope, fos, expected):
    assert failure_probability(slope, fos, 0.0, 0.0) == (fos, pytest.approx(expected))


def test_rainfall_amplifiers():
    assert failure_probability(20, 1.8, 40.0, 0.0)[1] == pytest.approx(0.14)
    assert failure_probability(20, 1.8, 40.0, 200.0)[1] == pytest.approx(0.182)
    assert failure_probability(35, 0.5, 40.0, 200.0)[1] == pytest.approx(0.99)


def test_gentle_slope_probability_is_zero():
    assert failure_probability(3, 0.5, 80.0, 300.0) == (STABLE_FOS, 0.0)


@pytest.mark.parametrize(
    "probability, level",
    [(0.76, "Extreme"), (0.75, "High"), (0.51, "High"), (0.5, "Medium"),
     (0.26, "Medium"), (0.25, "Low"), (0.0, "Low")],
)
def test_risk_levels(probability, level):
    assert risk_level(probability) == level


def test_probability_never_falls_as_rain_accumulates():
    previous = 0.0
    for rain_7day in range(0, 400, 10):
        p = evaluate(make_features(rain_current=0.0, rain_7day=float(rain_7day))).details["probability_pct"]
        assert p >= previous
        previous = p


# --- Manual rainfall ---

def test_manual_rainfall_override():
    simulated = apply_manual_rainfall(make_features(), 20)
    assert simulated.rain_current == 20.0
    assert simulated.rain_7day == 140.0
    assert simulated.simulated is True


@pytest.mark.parametrize("manual_rain", [None, "heavy", float("nan"), True])
def test_manual_rainfall_ignores_unusable_values(manual_rain):
    features = make_features()
    assert apply_manual_rainfall(features, manual_rain) is features


def test_negative_manual_rainfall_clamps_to_zero():
    simulated = apply_manual_rainfall(make_features(), -5)
    assert simulated.rain_current == 0.0
    assert simulated.rain_7day == 0.0


def test_simulation_flag_reaches_verdict():
    assert evaluate(make_features(), manual_rain=20).simulated is True
    assert evaluate(make_features()).simulated is False
    assert evaluate(make_features(), manual_rain="20").to_dict()["isSimulated"] is True


# --- Sanitizing ---

def test_missing_composition_uses_defaults():
    verdict = evaluate(make_features(clay=float("nan"), sand=None, silt=None))
    assert verdict.soil_type == "Clay Loam"
    assert "clay 30%, sand 40%, silt 30%" in verdict.reason


def test_missing_density_and_depth_use_defaults():
    verdict = evaluate(make_features(bulk_density=float("inf"), depth=-1.0))
    assert verdict.details["unit_weight_kn_m3"] == 13.73
    assert verdict.details["depth_m"] == 2.5

    assert evaluate(make_features(depth=None)).details["depth_m"] == 2.5


def test_negative_composition_recovers_with_defaults():
    verdict = evaluate(make_features(clay=-5.0))
    assert verdict.soil_type == "Clay Loam"
    assert "clay 30%, sand 40%, silt 30%" in verdict.reason


def test_verdict_serializes():
    data = evaluate(make_features()).to_dict()
    assert data["risk_level"] == "Low"
    assert data["climate"]["zone"] == "Tropical"
    assert data["isSimulated"] is False
    assert set(data) >= {"risk_level", "reason", "environment", "soil_type", "details"}


def test_simulated_rain_keeps_observed_climate():
    dry_week = make_features(climate=None, slope=30.0, depth=6.0, rain_current=0.0, rain_7day=10.0)
    previous = 0.0
    for manual_rain in range(0, 31):
        verdict = evaluate(dry_week, manual_rain=manual_rain)
        assert verdict.climate.zone == "Arid/Semi-arid"
        p = verdict.details["probability_pct"]
        assert p >= previous
        previous = p


def test_huge_manual_rainfall_saturates():
    simulated = apply_manual_rainfall(make_features(), 1e308)
    assert simulated.rain_current == MAX_MANUAL_RAIN_MM
    assert math.isfinite(simulated.rain_7day)

    assert evaluate(make_features(), manual_rain=1e308).details["saturation_pct"] == 100.0
