"""
Anomaly Detector — Batch Z-Score Outlier Flags

Scores each record against the distribution of its own batch. No model is
trained; statistics are recomputed per call and never touch the
Normalizer's frozen stats.

Constraints:
- Needs at least `min_samples` valid values for a feature, otherwise the
  batch is returned unchanged (no-op, not an error)
- std uses ddof=1; a zero-variance batch flags nothing
- Records missing the feature get zscore 0.0 and no flag
- Aggregate score = flagged features / checked features
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)

DEFAULT_ZSCORE_THRESHOLD = 3.0
DEFAULT_MIN_SAMPLES = 10
DEFAULT_ANOMALY_SCORE_THRESHOLD = 0.3


class AnomalyResult(BaseModel):
    """Per-record outcome of multi-feature anomaly scoring."""
    timestamp_ms: Optional[int] = None
    flags: Dict[str, bool] = Field(default_factory=dict)
    zscores: Dict[str, float] = Field(default_factory=dict)
    overall_anomaly_score: float = Field(..., ge=0.0, le=1.0, description="Share of flagged features")
    is_anomaly: bool


def _valid_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class AnomalyDetector:
    """
    Statistical outlier detector over a batch of records.

    Records are any name -> value mappings (FeatureVectors or dicts).
    """

    def __init__(self, min_samples: int = DEFAULT_MIN_SAMPLES):
        if min_samples < 2:
            raise ValueError("min_samples must be >= 2")
        self.min_samples = min_samples

    def _zscores(self, batch: Sequence[Mapping], feature: str) -> Optional[List[Optional[float]]]:
        """
        Per-record z-scores for one feature.

        Returns None when the batch has too few valid values. Entries are
        None for records without a valid value.
        """
        values = [_valid_number(record.get(feature)) for record in batch]
        valid = np.array([v for v in values if v is not None], dtype=np.float64)
        if len(valid) < self.min_samples:
            return None

        mean = float(valid.mean())
        std = float(valid.std(ddof=1))
        if not math.isfinite(std) or std == 0.0:
            return [None if v is None else 0.0 for v in values]
        return [None if v is None else (v - mean) / std for v in values]

    def detect(
        self,
        batch: Sequence[Mapping],
        feature: str,
        threshold: float = DEFAULT_ZSCORE_THRESHOLD,
    ) -> List[Mapping]:
        """
        Attach `{feature}_anomaly` and `{feature}_zscore` to every record.

        Args:
            batch: Records to check
            feature: Feature name to check
            threshold: Absolute z-score above which a record is flagged

        Returns:
            New dict per record with the two keys added, or the records
            unchanged if fewer than min_samples valid values exist
        """
        zscores = self._zscores(batch, feature)
        if zscores is None:
            logger.debug(f"[AnomalyDetector] Too few values for '{feature}'; skipping")
            return list(batch)

        result = []
        for record, z in zip(batch, zscores):
            enriched = dict(record)
            enriched[f"{feature}_zscore"] = z if z is not None else 0.0
            enriched[f"{feature}_anomaly"] = z is not None and abs(z) > threshold
            result.append(enriched)
        return result

    def score(
        self,
        batch: Sequence[Mapping],
        features: Sequence[str],
        zscore_threshold: float = DEFAULT_ZSCORE_THRESHOLD,
        anomaly_threshold: float = DEFAULT_ANOMALY_SCORE_THRESHOLD,
    ) -> List[AnomalyResult]:
        """
        Check a fixed feature set and aggregate per record.

        Features without enough data count as checked but never flag.

        Returns:
            One AnomalyResult per record, in batch order
        """
        features = list(features)
        per_feature = {}
        for feature in features:
            zscores = self._zscores(batch, feature)
            if zscores is None:
                logger.warning(
                    f"[AnomalyDetector] Fewer than {self.min_samples} values for '{feature}'; not flagged"
                )
                zscores = [None] * len(batch)
            per_feature[feature] = zscores

        results = []
        for i, record in enumerate(batch):
            flags = {}
            zs = {}
            for feature in features:
                z = per_feature[feature][i]
                zs[feature] = z if z is not None else 0.0
                flags[feature] = z is not None and abs(z) > zscore_threshold
            overall = sum(flags.values()) / len(features) if features else 0.0
            results.append(AnomalyResult(
                timestamp_ms=getattr(record, "timestamp_ms", record.get("timestamp_ms")),
                flags=flags,
                zscores=zs,
                overall_anomaly_score=overall,
                is_anomaly=overall > anomaly_threshold,
            ))

        flagged = sum(1 for r in results if r.is_anomaly)
        if flagged:
            logger.info(f"[AnomalyDetector] {flagged}/{len(results)} records flagged anomalous")
        return results
