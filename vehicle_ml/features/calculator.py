"""
Feature Calculator — Window and Single-Sample Computations

Two families of pure functions:

- Sequence functions take the sample frame (one row per RawSample, in
  chronological order) and return a Series aligned to it. Uses Pandas
  rolling/shift for all window math (no Python loops over rows).
- Sample functions take one RawSample plus static lookup constants and
  return a float.

Every function returns finite values. Missing inputs and zero
denominators degrade to 0.0 instead of raising or propagating NaN.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from types import MappingProxyType
from typing import Mapping

import numpy as np
import pandas as pd

from vehicle_ml.generator.schemas import (
    DrivingMode,
    FaultScenario,
    RawSample,
    VehicleClass,
)


# =============================================================================
# STATIC LOOKUP TABLES
# =============================================================================

# Curb weight estimates (kg) per vehicle class
VEHICLE_CLASS_WEIGHTS_KG: Mapping[str, float] = MappingProxyType({
    VehicleClass.SEDAN.value: 1500.0,
    VehicleClass.SUV.value: 2000.0,
    VehicleClass.TRUCK.value: 2500.0,
})
DEFAULT_VEHICLE_WEIGHT_KG: float = 1500.0

# Categorical codes; 0 is reserved for missing or unknown values
MODE_CODES: Mapping[str, int] = MappingProxyType({
    DrivingMode.CITY.value: 1,
    DrivingMode.HIGHWAY.value: 2,
    DrivingMode.SPORT.value: 3,
})
VEHICLE_CLASS_CODES: Mapping[str, int] = MappingProxyType({
    VehicleClass.SEDAN.value: 1,
    VehicleClass.SUV.value: 2,
    VehicleClass.TRUCK.value: 3,
})
FAULT_SCENARIO_CODES: Mapping[str, int] = MappingProxyType({
    FaultScenario.NORMAL.value: 0,
    FaultScenario.OVERHEAT.value: 1,
    FaultScenario.LOW_OIL.value: 2,
    FaultScenario.SENSOR_FAULT.value: 3,
})

# Reference points for health indices
OPTIMAL_SPEED_KMH = 60.0
MAX_RATED_RPM = 6000.0
STRESS_TEMP_C = 90.0
STRESS_TEMP_SPAN_C = 30.0
OPTIMAL_COOLANT_C = 85.0
COOLANT_TOLERANCE_C = 50.0
OPTIMAL_FUEL_PRESSURE = 45.0
FUEL_PRESSURE_TOLERANCE = 30.0
MIN_MANIFOLD_PRESSURE = 20.0
EXPECTED_LOAD_PER_THROTTLE = 0.8

# Inclusive hour ranges counted as peak traffic
PEAK_HOURS = ((7, 9), (16, 18))


@dataclass(frozen=True)
class DerivedConstants:
    """Static inputs for single-sample features."""
    vehicle_weights: Mapping[str, float] = field(default_factory=lambda: VEHICLE_CLASS_WEIGHTS_KG)
    default_weight: float = DEFAULT_VEHICLE_WEIGHT_KG
    tz: tzinfo = timezone.utc


def _finite(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


# =============================================================================
# SEQUENCE FUNCTIONS
# =============================================================================

def _column(frame: pd.DataFrame, name: str) -> pd.Series:
    """Numeric view of a frame column; unusable values become NaN."""
    if name not in frame.columns:
        return pd.Series(np.nan, index=frame.index, dtype="float64")
    series = pd.to_numeric(frame[name], errors="coerce").astype("float64")
    return series.replace([np.inf, -np.inf], np.nan)


def rolling_mean(frame: pd.DataFrame, source: str, window: int) -> pd.Series:
    """
    Centered rolling mean.

    Window for index i is [max(0, i - w//2), min(n, i + w//2 + 1)).
    Edges shrink to asymmetric windows. NaN values are ignored; a window
    with no valid values yields 0.0.
    """
    half = window // 2
    values = _column(frame, source)
    result = values.rolling(window=2 * half + 1, center=True, min_periods=1).mean()
    return result.fillna(0.0)


def rolling_std(frame: pd.DataFrame, source: str, window: int) -> pd.Series:
    """
    Centered rolling sample standard deviation (ddof=1).

    Same window as rolling_mean. Fewer than 2 valid values yields 0.0.
    """
    half = window // 2
    values = _column(frame, source)
    result = values.rolling(window=2 * half + 1, center=True, min_periods=2).std(ddof=1)
    return result.fillna(0.0)


def rate_of_change(frame: pd.DataFrame, source: str, interval_s: float) -> pd.Series:
    """
    First difference divided by the fixed sampling interval.

    Index 0 and any step touching a missing value yield 0.0.
    """
    values = _column(frame, source)
    if interval_s <= 0:
        return pd.Series(0.0, index=frame.index)
    return (values.diff() / interval_s).fillna(0.0)


def lag(frame: pd.DataFrame, source: str, steps: int) -> pd.Series:
    """Value `steps` samples back; 0.0 where i - steps < 0."""
    return _column(frame, source).shift(steps).fillna(0.0)


def moving_average(frame: pd.DataFrame, source: str, window: int) -> pd.Series:
    """
    Trailing mean over [max(0, i - m + 1), i].

    NaN values are ignored; 0.0 if the window has none.
    """
    values = _column(frame, source)
    return values.rolling(window=window, min_periods=1).mean().fillna(0.0)


# =============================================================================
# SAMPLE FUNCTIONS
# =============================================================================

def raw_value(sample: RawSample, constants: DerivedConstants, source: str) -> float:
    """Pass-through of a raw numeric signal."""
    return _finite(getattr(sample, source))


def mode_code(sample: RawSample, constants: DerivedConstants) -> float:
    return float(MODE_CODES.get(sample.mode or "", 0))


def vehicle_type_code(sample: RawSample, constants: DerivedConstants) -> float:
    return float(VEHICLE_CLASS_CODES.get(sample.vehicle_type or "", 0))


def power_to_weight_ratio(sample: RawSample, constants: DerivedConstants) -> float:
    """
    Estimated power over class weight.

    Formula: (rpm * engine_load / 1000) / weight[vehicle_type]
    Unknown classes fall back to the default weight.
    """
    weight = constants.vehicle_weights.get(sample.vehicle_type or "", constants.default_weight)
    if weight <= 0:
        return 0.0
    return _finite((sample.rpm * sample.engine_load / 1000.0) / weight)


def fuel_efficiency_index(sample: RawSample, constants: DerivedConstants) -> float:
    """
    Mean of speed, load and throttle efficiency sub-scores.

    speed score peaks at 60 km/h and is clamped at 0.
    """
    speed_score = max(0.0, 1.0 - abs(sample.speed - OPTIMAL_SPEED_KMH) / OPTIMAL_SPEED_KMH)
    load_score = 1.0 - sample.engine_load / 100.0
    throttle_score = 1.0 - sample.throttle_pos / 100.0
    return _finite((speed_score + load_score + throttle_score) / 3.0)


def engine_stress_index(sample: RawSample, constants: DerivedConstants) -> float:
    """Mean of rpm, load and temperature stress, capped at 1."""
    rpm_stress = min(sample.rpm / MAX_RATED_RPM, 1.0)
    load_stress = sample.engine_load / 100.0
    temp_stress = max(0.0, (sample.coolant_temp - STRESS_TEMP_C) / STRESS_TEMP_SPAN_C)
    return _finite(min(1.0, (rpm_stress + load_stress + temp_stress) / 3.0))


def cooling_system_health(sample: RawSample, constants: DerivedConstants) -> float:
    """1.0 at 85°C coolant, falling linearly to 0 at ±50°C."""
    deviation = abs(sample.coolant_temp - OPTIMAL_COOLANT_C)
    return _finite(max(0.0, 1.0 - deviation / COOLANT_TOLERANCE_C))


def fuel_system_health(sample: RawSample, constants: DerivedConstants) -> float:
    """Mean of fuel pressure closeness to 45 and a manifold pressure step."""
    pressure_health = max(
        0.0,
        1.0 - abs(sample.fuel_pressure - OPTIMAL_FUEL_PRESSURE) / FUEL_PRESSURE_TOLERANCE,
    )
    manifold_health = 1.0 if sample.intake_manifold_pressure > MIN_MANIFOLD_PRESSURE else 0.5
    return _finite((pressure_health + manifold_health) / 2.0)


def engine_power_estimate(sample: RawSample, constants: DerivedConstants) -> float:
    """(rpm * manifold_pressure / 10000) * (engine_load / 100)"""
    base_power = sample.rpm * sample.intake_manifold_pressure / 10000.0
    return _finite(base_power * (sample.engine_load / 100.0))


def transmission_load(sample: RawSample, constants: DerivedConstants) -> float:
    """Effective gear ratio (rpm/speed) scaled by throttle; 0 when stationary."""
    gear_ratio = sample.rpm / sample.speed if sample.speed > 0 else 0.0
    return _finite(gear_ratio * (sample.throttle_pos / 100.0))


def throttle_response(sample: RawSample, constants: DerivedConstants) -> float:
    """How closely engine load tracks 0.8 x throttle, in [0, 1]."""
    expected_load = sample.throttle_pos * EXPECTED_LOAD_PER_THROTTLE
    return _finite(max(0.0, 1.0 - abs(sample.engine_load - expected_load) / 100.0))


def ambient_temp_difference(sample: RawSample, constants: DerivedConstants) -> float:
    return _finite(sample.intake_air_temp - sample.coolant_temp)


def _local_time(sample: RawSample, constants: DerivedConstants) -> datetime:
    return datetime.fromtimestamp(sample.timestamp_ms / 1000.0, tz=constants.tz)


def hour_of_day(sample: RawSample, constants: DerivedConstants) -> float:
    return float(_local_time(sample, constants).hour)


def is_peak_hour(sample: RawSample, constants: DerivedConstants) -> float:
    hour = _local_time(sample, constants).hour
    return 1.0 if any(start <= hour <= end for start, end in PEAK_HOURS) else 0.0


def is_weekend(sample: RawSample, constants: DerivedConstants) -> float:
    # Monday == 0, so Saturday/Sunday are 5 and 6
    return 1.0 if _local_time(sample, constants).weekday() >= 5 else 0.0


def encode_fault_label(label) -> int:
    """Encode a fault scenario label; missing labels count as normal."""
    if label is None:
        return FAULT_SCENARIO_CODES[FaultScenario.NORMAL.value]
    return FAULT_SCENARIO_CODES.get(str(label).strip().lower(), 0)
