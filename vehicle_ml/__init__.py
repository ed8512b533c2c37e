"""
Vehicle ML Pipeline — Telemetry Feature Engineering

Turns raw vehicle sensor samples into fixed-schema, normalized feature
vectors that are identical at training time and at inference time.

Public API:
- PipelineOrchestrator: Training / real-time / anomaly entry points
- RawSample: One sensor reading
- FeatureVector: One engineered record
- FeatureSchema: Ordered feature registry
- Normalizer: Frozen z-score statistics
- AnomalyDetector: Batch z-score outlier flags
"""

from .exceptions import (
    ConfigurationError,
    NoDataAvailableError,
    PipelineError,
)
from .features import FeatureEngine, FeatureSchema, FeatureVector
from .generator import RawSample, SyntheticSampleGenerator
from .ml import AnomalyDetector, Normalizer
from .pipeline import PipelineOrchestrator, PipelineState

__all__ = [
    "PipelineOrchestrator",
    "PipelineState",
    "RawSample",
    "SyntheticSampleGenerator",
    "FeatureEngine",
    "FeatureSchema",
    "FeatureVector",
    "Normalizer",
    "AnomalyDetector",
    "PipelineError",
    "ConfigurationError",
    "NoDataAvailableError",
]
