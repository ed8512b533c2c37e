"""
Features Module — Feature Engineering Layer

Public API:
- FeatureEngine: Builds one FeatureVector per RawSample
- FeatureSchema / build_feature_schema: Ordered feature registry
- FeatureConfig: Window, lag and moving-average parameters
- WindowEngine: Sequence-scoped features
- DerivedIndexCalculator: Single-sample features
- FeatureVector: Immutable engineered record
"""

from .derived import DerivedIndexCalculator
from .engine import FeatureEngine
from .registry import (
    FeatureConfig,
    FeatureDefinition,
    FeatureKind,
    FeatureSchema,
    FeatureScope,
    build_feature_schema,
)
from .schemas import FeatureVector, frame_to_vectors, vectors_to_frame
from .window import WindowEngine

__all__ = [
    "FeatureEngine",
    "FeatureSchema",
    "FeatureDefinition",
    "FeatureConfig",
    "FeatureKind",
    "FeatureScope",
    "build_feature_schema",
    "WindowEngine",
    "DerivedIndexCalculator",
    "FeatureVector",
    "vectors_to_frame",
    "frame_to_vectors",
]
