"""
Generator Configuration — Scenario Parameter Ranges

Ranges used to synthesize plausible vehicle telemetry when real history is
too short to train on. Values mirror the envelope of the recorded fleet.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from .schemas import DrivingMode, FaultScenario, VehicleClass


@dataclass(frozen=True)
class SignalRange:
    """Uniform sampling range for one numeric signal."""
    low: float
    high: float


# =============================================================================
# SIGNAL RANGES
# =============================================================================

SIGNAL_RANGES: Dict[str, SignalRange] = {
    "rpm": SignalRange(800.0, 4000.0),
    "speed": SignalRange(0.0, 120.0),                    # km/h
    "coolant_temp": SignalRange(70.0, 110.0),            # °C
    "intake_air_temp": SignalRange(15.0, 50.0),          # °C
    "throttle_pos": SignalRange(0.0, 100.0),             # %
    "engine_load": SignalRange(0.0, 100.0),              # %
    "fuel_pressure": SignalRange(30.0, 55.0),            # psi
    "intake_manifold_pressure": SignalRange(20.0, 80.0), # kPa
}


# =============================================================================
# CATEGORICAL SCENARIOS
# =============================================================================

MODES: Tuple[DrivingMode, ...] = tuple(DrivingMode)
VEHICLE_CLASSES: Tuple[VehicleClass, ...] = tuple(VehicleClass)

# Faults drawn when a sample is not labelled normal
FAULTS: Tuple[FaultScenario, ...] = (
    FaultScenario.OVERHEAT,
    FaultScenario.LOW_OIL,
    FaultScenario.SENSOR_FAULT,
)

FAULT_PROBABILITY: float = 0.10


# =============================================================================
# GENERATOR DEFAULTS
# =============================================================================

DEFAULT_SAMPLE_INTERVAL_MS: int = 2000  # 2 seconds between samples
