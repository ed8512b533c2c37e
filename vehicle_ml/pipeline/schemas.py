"""
Pipeline Result Types

What the orchestrator hands to its collaborators:
- TrainingDataset -> Model Training collaborator
- RealtimeFeatures -> Real-time Inference collaborator
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

import joblib
import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from vehicle_ml.features.schemas import FeatureVector, frame_to_vectors
from vehicle_ml.ml.normalizer import NormalizationStats
from vehicle_ml.ml.validation import FeatureSelection, QualityReport


class PipelineState(str, Enum):
    """Uninitialized -> Initialized -> Ready"""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    READY = "ready"


class TrainingMetadata(BaseModel):
    """Provenance of a training run."""
    real_sample_count: int = Field(..., ge=0)
    synthetic_sample_count: int = Field(default=0, ge=0)
    total_samples: int = Field(..., ge=0)
    feature_count: int = Field(..., ge=0)
    synthetic_augmented: bool = False
    target_field: Optional[str] = None
    stats_id: str
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class TrainingDataset:
    """
    Engineered and normalized training batch.

    Attributes:
        features: Normalized matrix, index timestamp_ms, columns in schema order
        vectors: The same rows as FeatureVectors
        feature_names: Column order
        targets: Optional target values aligned with rows
        selection: Feature selection report
        quality: Feature quality report
        stats: Frozen normalization statistics used for the matrix
        metadata: Run provenance
    """
    features: pd.DataFrame
    vectors: List[FeatureVector]
    feature_names: List[str]
    selection: FeatureSelection
    quality: QualityReport
    stats: NormalizationStats
    metadata: TrainingMetadata
    targets: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.vectors)

    @property
    def matrix(self) -> np.ndarray:
        return self.features.to_numpy(dtype=np.float64)

    def save(self, filepath) -> Path:
        """
        Save the dataset with joblib.

        Pydantic reports are stored as plain dicts so the file does not
        depend on class pickling.
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump({
            'features': self.features,
            'feature_names': list(self.feature_names),
            'targets': self.targets,
            'selection': self.selection.model_dump(),
            'quality': self.quality.model_dump(),
            'stats': self.stats.model_dump(mode="json"),
            'metadata': self.metadata.model_dump(mode="json"),
        }, path)
        return path

    @classmethod
    def load(cls, filepath) -> "TrainingDataset":
        data = joblib.load(filepath)
        features = data['features']
        return cls(
            features=features,
            vectors=frame_to_vectors(features),
            feature_names=data['feature_names'],
            targets=data['targets'],
            selection=FeatureSelection.model_validate(data['selection']),
            quality=QualityReport.model_validate(data['quality']),
            stats=NormalizationStats.model_validate(data['stats']),
            metadata=TrainingMetadata.model_validate(data['metadata']),
        )


@dataclass(frozen=True)
class RealtimeFeatures:
    """Normalized window for inference; `latest` is the newest sample."""
    vectors: List[FeatureVector]
    stats_id: str
    window_size: int
    feature_names: List[str] = field(default_factory=list)

    @property
    def latest(self) -> FeatureVector:
        return self.vectors[-1]
