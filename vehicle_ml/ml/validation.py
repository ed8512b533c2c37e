"""
Feature Validation — Quality Report and Feature Selection

Read-only checks over an engineered feature matrix. Nothing here modifies
the matrix; the Model Training collaborator decides what to drop.

Quality checks:
- Sample size below min_samples
- Null, constant and degenerate (non-finite) features
- Highly correlated feature pairs (|r| > 0.95), each pair once
- Target class diversity

Selection:
- No target: variance above threshold (VarianceThreshold)
- With target: |Pearson r| with the target above threshold (r_regression)
"""

import logging
import warnings
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field
from sklearn.feature_selection import VarianceThreshold, r_regression


logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 100
HIGH_CORRELATION = 0.95
VARIANCE_THRESHOLD = 0.01
TARGET_CORRELATION_THRESHOLD = 0.1


class CorrelatedPair(BaseModel):
    feature_a: str
    feature_b: str
    correlation: float


class QualityReport(BaseModel):
    """Outcome of validate_feature_quality()."""
    sample_size: int = Field(..., ge=0)
    feature_count: int = Field(..., ge=0)
    null_features: List[str] = Field(default_factory=list)
    constant_features: List[str] = Field(default_factory=list)
    degenerate_features: List[str] = Field(default_factory=list)
    correlated_pairs: List[CorrelatedPair] = Field(default_factory=list)
    target_diversity_ok: Optional[bool] = None
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues


class FeatureSelection(BaseModel):
    """Outcome of select_features()."""
    method: str  # "variance" or "target_correlation"
    threshold: float
    selected_features: List[str] = Field(default_factory=list)
    importance_scores: Dict[str, float] = Field(default_factory=dict)


def _numeric(frame: pd.DataFrame) -> pd.DataFrame:
    return frame.apply(pd.to_numeric, errors="coerce").astype("float64")


def _correlated_pairs(frame: pd.DataFrame, threshold: float) -> List[Tuple[str, str, float]]:
    """Upper-triangle pairs of columns with |r| above threshold."""
    if frame.shape[1] < 2 or len(frame) < 2:
        return []
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        corr = frame.corr(method="pearson")
    columns = list(corr.columns)
    pairs = []
    for i, a in enumerate(columns):
        for b in columns[i + 1:]:
            r = corr.at[a, b]
            if pd.notna(r) and abs(r) > threshold:
                pairs.append((a, b, float(r)))
    return pairs


def validate_feature_quality(
    frame: pd.DataFrame,
    targets: Optional[Sequence] = None,
    min_samples: int = MIN_SAMPLE_SIZE,
    correlation_threshold: float = HIGH_CORRELATION,
) -> QualityReport:
    """
    Inspect an engineered feature matrix.

    Args:
        frame: One row per sample, one column per feature
        targets: Optional target values aligned with rows
        min_samples: Below this many rows the batch is flagged as small
        correlation_threshold: |r| above which a pair is reported

    Returns:
        QualityReport (issues empty when nothing was found)
    """
    data = _numeric(frame)
    report = QualityReport(sample_size=len(data), feature_count=data.shape[1])

    if len(data) < min_samples:
        report.issues.append(f"Small sample size ({len(data)} < {min_samples}) may lead to overfitting")
        report.recommendations.append("Consider collecting more data or using data augmentation")

    finite = data.replace([np.inf, -np.inf], np.nan)
    for column in data.columns:
        raw = data[column]
        if raw.isna().all() and len(raw) > 0:
            report.null_features.append(column)
            report.issues.append(f"Feature {column} has no values")
            report.recommendations.append(f"Remove empty feature {column}")
            continue
        if np.isinf(raw.to_numpy()).any():
            report.degenerate_features.append(column)
            report.issues.append(f"Feature {column} contains non-finite values")
            report.recommendations.append(f"Check the computation of {column}")
        if finite[column].nunique(dropna=True) <= 1 and len(raw) > 0:
            report.constant_features.append(column)
            report.issues.append(f"Feature {column} is constant")
            report.recommendations.append(f"Remove constant feature {column}")

    usable = finite.drop(columns=report.null_features + report.constant_features)
    for a, b, r in _correlated_pairs(usable, correlation_threshold):
        report.correlated_pairs.append(CorrelatedPair(feature_a=a, feature_b=b, correlation=r))
        report.issues.append(f"High correlation between {a} and {b} ({r:.3f})")
    if report.correlated_pairs:
        report.recommendations.append("Consider removing one of each highly correlated pair")

    if targets is not None:
        distinct = pd.Series(list(targets)).nunique(dropna=True)
        report.target_diversity_ok = distinct >= 2
        if not report.target_diversity_ok:
            report.issues.append("Target variable has insufficient class diversity")
            report.recommendations.append("Ensure the target has multiple classes for classification")

    if report.issues:
        logger.warning(f"[Validation] {len(report.issues)} data quality issues found")
    else:
        logger.info(f"[Validation] Feature matrix passed quality checks ({report.sample_size} rows)")
    return report


def select_features(
    frame: pd.DataFrame,
    targets: Optional[Sequence] = None,
    variance_threshold: float = VARIANCE_THRESHOLD,
    correlation_threshold: float = TARGET_CORRELATION_THRESHOLD,
) -> FeatureSelection:
    """
    Rank features and keep the informative ones.

    Without targets, importance is the feature variance and features above
    variance_threshold are kept. With targets, importance is |Pearson r|
    with the target and features above correlation_threshold are kept.
    Missing values are treated as 0.
    """
    columns = [str(c) for c in frame.columns]
    matrix = np.nan_to_num(_numeric(frame).to_numpy(), nan=0.0, posinf=0.0, neginf=0.0)

    if targets is None:
        method, threshold = "variance", variance_threshold
        if matrix.size == 0:
            return FeatureSelection(method=method, threshold=threshold)
        selector = VarianceThreshold(threshold=variance_threshold)
        try:
            selector.fit(matrix)
            mask = selector.get_support()
        except ValueError:
            # Raised when no feature clears the threshold
            mask = np.zeros(len(columns), dtype=bool)
        scores = np.var(matrix, axis=0)
    else:
        method, threshold = "target_correlation", correlation_threshold
        y = np.nan_to_num(np.asarray(list(targets), dtype=np.float64))
        if len(y) != matrix.shape[0]:
            raise ValueError(f"targets length {len(y)} does not match {matrix.shape[0]} rows")
        if matrix.size == 0:
            return FeatureSelection(method=method, threshold=threshold)
        with warnings.catch_warnings():
            # Constant columns or targets produce NaN correlations
            warnings.simplefilter("ignore", category=RuntimeWarning)
            scores = np.abs(np.nan_to_num(r_regression(matrix, y), nan=0.0))
        mask = scores > correlation_threshold

    selected = [name for name, keep in zip(columns, mask) if keep]
    logger.info(f"[Validation] Selected {len(selected)}/{len(columns)} features by {method}")
    return FeatureSelection(
        method=method,
        threshold=threshold,
        selected_features=selected,
        importance_scores={name: float(s) for name, s in zip(columns, scores)},
    )
