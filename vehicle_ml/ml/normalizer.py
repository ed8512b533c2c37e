"""
Normalizer — Frozen Z-Score Statistics

Fits per-feature mean/std on a reference batch (the training set), freezes
them, and applies (x - mean) / std to any later batch with those exact
numbers. Training and real-time paths therefore scale identically.

Constraints:
- Ignores NaN/inf values when fitting
- std uses ddof=1 (sample standard deviation)
- std == 0 or a feature never fitted -> value passes through unscaled
- transform() before fit() is a configuration error
- Stats are never refitted implicitly; fit() again is an explicit replace
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from vehicle_ml.exceptions import ConfigurationError
from vehicle_ml.features.schemas import FeatureVector


logger = logging.getLogger(__name__)


class NormalizerNotFittedError(ConfigurationError):
    """Raised when transform() runs before any statistics exist."""
    pass


class FeatureStats(BaseModel):
    """Fitted statistics for one feature."""
    model_config = ConfigDict(frozen=True)

    mean: float
    std: float = Field(..., ge=0)
    count: int = Field(..., ge=0, description="Number of valid values used")


class NormalizationStats(BaseModel):
    """
    Frozen statistics for a pipeline instance.

    feature_order records the feature list the stats were fitted for, so a
    later process can rebuild vectors in the same order.
    """
    model_config = ConfigDict(frozen=True)

    stats_id: str = Field(default_factory=lambda: str(uuid4()))
    fitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sample_count: int = Field(..., ge=0)
    feature_order: List[str]
    features: Dict[str, FeatureStats]

    @field_validator("fitted_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class NormalizerState(str, Enum):
    UNFIT = "unfit"
    FITTING = "fitting"
    FROZEN = "frozen"


def _reference_frame(reference: Sequence, features: Sequence[str]) -> pd.DataFrame:
    rows = [[record.get(name, np.nan) for name in features] for record in reference]
    frame = pd.DataFrame(rows, columns=list(features))
    frame = frame.apply(pd.to_numeric, errors="coerce")
    return frame.replace([np.inf, -np.inf], np.nan)


class Normalizer:
    """
    Owns the NormalizationStats of one pipeline.

    State: UNFIT -> FITTING -> FROZEN. A lock serializes fit() against
    transform(), so a transform never observes half-built statistics.
    """

    def __init__(self):
        self._stats: Optional[NormalizationStats] = None
        self._state = NormalizerState.UNFIT
        self._lock = Lock()

    @property
    def state(self) -> NormalizerState:
        return self._state

    @property
    def is_fitted(self) -> bool:
        return self._state == NormalizerState.FROZEN

    @property
    def stats(self) -> NormalizationStats:
        """
        Frozen statistics.

        Raises:
            NormalizerNotFittedError: If fit() has not completed
        """
        stats = self._stats
        if stats is None:
            raise NormalizerNotFittedError(
                "Normalizer has no statistics. Call fit() or load stats first."
            )
        return stats

    def fit(self, reference: Sequence, features: Optional[Iterable[str]] = None) -> NormalizationStats:
        """
        Fit and freeze statistics on a reference batch.

        Args:
            reference: FeatureVectors (or any name -> value mappings)
            features: Features to fit (default: names of the first record)

        Returns:
            The frozen NormalizationStats

        Raises:
            ValueError: If the reference batch is empty
        """
        if not reference:
            raise ValueError("Cannot fit normalizer on an empty reference batch")
        feature_list = list(features) if features is not None else list(reference[0].keys())

        with self._lock:
            previous_state = self._state
            self._state = NormalizerState.FITTING
            try:
                frame = _reference_frame(reference, feature_list)
                fitted: Dict[str, FeatureStats] = {}
                for name in feature_list:
                    valid = frame[name].dropna()
                    if valid.empty:
                        logger.warning(f"[Normalizer] No valid values for '{name}'; it will pass through")
                        continue
                    std = float(valid.std(ddof=1)) if len(valid) > 1 else 0.0
                    fitted[name] = FeatureStats(
                        mean=float(valid.mean()),
                        std=std if np.isfinite(std) else 0.0,
                        count=int(len(valid)),
                    )
                stats = NormalizationStats(
                    sample_count=len(reference),
                    feature_order=feature_list,
                    features=fitted,
                )
            except Exception:
                self._state = previous_state
                raise
            if self._stats is not None:
                logger.info(f"[Normalizer] Replacing stats {self._stats.stats_id[:8]} by explicit refit")
            self._stats = stats
            self._state = NormalizerState.FROZEN

        constant = [name for name, s in fitted.items() if s.std == 0.0]
        if constant:
            logger.info(f"[Normalizer] {len(constant)} zero-variance features pass through unscaled")
        logger.info(
            f"[Normalizer] Fitted {len(fitted)}/{len(feature_list)} features on {len(reference)} samples"
        )
        return stats

    def load(self, stats: NormalizationStats) -> None:
        """Adopt previously fitted statistics verbatim."""
        with self._lock:
            self._stats = stats
            self._state = NormalizerState.FROZEN
        logger.info(f"[Normalizer] Loaded stats {stats.stats_id[:8]} ({len(stats.features)} features)")

    def _snapshot(self) -> NormalizationStats:
        with self._lock:
            return self.stats

    def transform(
        self,
        vectors: Sequence[FeatureVector],
        features: Optional[Iterable[str]] = None,
    ) -> List[FeatureVector]:
        """
        Z-score vectors with the frozen statistics.

        Args:
            vectors: FeatureVectors to scale
            features: Features to scale (default: every fitted feature)

        Returns:
            New FeatureVectors; inputs are not modified

        Raises:
            NormalizerNotFittedError: If called before fit()/load()
        """
        stats = self._snapshot()
        selected = set(features) if features is not None else set(stats.features)
        scalers = {
            name: s for name, s in stats.features.items()
            if name in selected and s.std > 0
        }

        result = []
        for vector in vectors:
            values = [
                (value - scalers[name].mean) / scalers[name].std if name in scalers else value
                for name, value in zip(vector.names, vector.values)
            ]
            result.append(vector.replace_values(values))
        return result

    def transform_frame(self, frame: pd.DataFrame) -> pd.DataFrame:
        """DataFrame variant of transform(); columns without stats pass through."""
        stats = self._snapshot()
        result = frame.copy()
        for name in result.columns:
            s = stats.features.get(name)
            if s is not None and s.std > 0:
                result[name] = (result[name] - s.mean) / s.std
        return result

    def reset(self) -> None:
        """Drop statistics and return to UNFIT."""
        with self._lock:
            self._stats = None
            self._state = NormalizerState.UNFIT


def save_stats(stats: NormalizationStats, directory: str = "models") -> Path:
    """
    Save statistics to JSON.

    File naming: normalization_{stats_id[:8]}.json
    Floats are written with full precision, so load_stats() returns
    bit-for-bit identical values.

    Returns:
        Path to saved file
    """
    dir_path = Path(directory)
    dir_path.mkdir(parents=True, exist_ok=True)

    filepath = dir_path / f"normalization_{stats.stats_id[:8]}.json"
    with open(filepath, "w") as f:
        json.dump(stats.model_dump(mode="json"), f, indent=2)

    return filepath


def load_stats(filepath) -> NormalizationStats:
    """Load statistics written by save_stats()."""
    with open(filepath, "r") as f:
        data = json.load(f)
    return NormalizationStats.model_validate(data)
