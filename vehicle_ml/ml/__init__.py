"""
ML Module — Normalization, Anomaly Flags, Feature Validation

Public API:
- Normalizer: Frozen z-score statistics (fit once, transform many)
- AnomalyDetector: Batch z-score outlier flags
- validate_feature_quality / select_features: Training-set reports
- clip_outliers / polynomial_features / create_sequences: Preprocessing helpers
"""

from .anomaly import AnomalyDetector, AnomalyResult
from .normalizer import (
    FeatureStats,
    NormalizationStats,
    Normalizer,
    NormalizerNotFittedError,
    NormalizerState,
    load_stats,
    save_stats,
)
from .preprocessing import clip_outliers, create_sequences, polynomial_features
from .validation import (
    CorrelatedPair,
    FeatureSelection,
    QualityReport,
    select_features,
    validate_feature_quality,
)

__all__ = [
    "AnomalyDetector",
    "AnomalyResult",
    "FeatureStats",
    "NormalizationStats",
    "Normalizer",
    "NormalizerNotFittedError",
    "NormalizerState",
    "load_stats",
    "save_stats",
    "clip_outliers",
    "create_sequences",
    "polynomial_features",
    "CorrelatedPair",
    "FeatureSelection",
    "QualityReport",
    "select_features",
    "validate_feature_quality",
]
