"""
Generator Module — Raw Samples and Synthetic Augmentation

Public API:
- RawSample: One sensor reading (input schema)
- SyntheticSampleGenerator: Seeded synthetic telemetry
- DrivingMode, VehicleClass, FaultScenario: Categorical vocabularies
"""

from .generator import SyntheticSampleGenerator
from .schemas import (
    CATEGORICAL_FIELDS,
    RAW_NUMERIC_FIELDS,
    DrivingMode,
    FaultScenario,
    RawSample,
    VehicleClass,
    samples_to_frame,
)

__all__ = [
    "RawSample",
    "SyntheticSampleGenerator",
    "DrivingMode",
    "VehicleClass",
    "FaultScenario",
    "RAW_NUMERIC_FIELDS",
    "CATEGORICAL_FIELDS",
    "samples_to_frame",
]
