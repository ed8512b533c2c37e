"""
Feature Validation and Preprocessing Tests

Tests verify:
- Quality report flags small, null, constant and degenerate features
- Correlated pairs are reported once
- Target diversity check
- Variance and target-correlation feature selection
- IQR clipping, polynomial terms and sequence windows
"""

import numpy as np
import pandas as pd
import pytest

from vehicle_ml.ml import (
    FeatureSelection,
    QualityReport,
    clip_outliers,
    create_sequences,
    polynomial_features,
    select_features,
    validate_feature_quality,
)


def create_feature_frame(n: int = 200) -> pd.DataFrame:
    """Frame with independent, constant and duplicated columns."""
    np.random.seed(42)
    rpm = np.random.normal(2500.0, 300.0, n)
    return pd.DataFrame({
        "rpm": rpm,
        "rpm_copy": rpm * 2.0 + 1.0,
        "speed": np.random.uniform(0.0, 120.0, n),
        "constant": np.full(n, 3.0),
    })


class TestValidateFeatureQuality:
    """Test the quality report."""

    def test_clean_frame_passes(self):
        np.random.seed(0)
        frame = pd.DataFrame({
            "a": np.random.normal(0, 1, 150),
            "b": np.random.uniform(0, 1, 150),
        })
        report = validate_feature_quality(frame)
        assert isinstance(report, QualityReport)
        assert report.passed
        assert report.sample_size == 150
        assert report.feature_count == 2

    def test_small_sample(self):
        report = validate_feature_quality(create_feature_frame(50))
        assert any("Small sample size" in issue for issue in report.issues)

    def test_constant_feature(self):
        report = validate_feature_quality(create_feature_frame())
        assert report.constant_features == ["constant"]
        assert "Remove constant feature constant" in report.recommendations

    def test_correlated_pair_reported_once(self):
        report = validate_feature_quality(create_feature_frame())
        assert len(report.correlated_pairs) == 1
        pair = report.correlated_pairs[0]
        assert (pair.feature_a, pair.feature_b) == ("rpm", "rpm_copy")
        assert pair.correlation == pytest.approx(1.0)

    def test_null_and_degenerate_features(self):
        frame = create_feature_frame()
        frame["empty"] = np.nan
        frame["broken"] = np.where(np.arange(len(frame)) % 2, np.inf, 1.0)
        report = validate_feature_quality(frame)
        assert report.null_features == ["empty"]
        assert "broken" in report.degenerate_features

    def test_target_diversity(self):
        frame = create_feature_frame()
        assert validate_feature_quality(frame, targets=[0] * len(frame)).target_diversity_ok is False
        assert validate_feature_quality(frame, targets=[0, 1] * 100).target_diversity_ok is True
        assert validate_feature_quality(frame).target_diversity_ok is None


class TestSelectFeatures:
    """Test feature selection."""

    def test_variance_selection(self):
        """Without targets, constant features are dropped."""
        selection = select_features(create_feature_frame())
        assert isinstance(selection, FeatureSelection)
        assert selection.method == "variance"
        assert selection.selected_features == ["rpm", "rpm_copy", "speed"]
        assert selection.importance_scores["constant"] == 0.0

    def test_all_constant_selects_nothing(self):
        frame = pd.DataFrame({"a": [1.0] * 10, "b": [2.0] * 10})
        selection = select_features(frame)
        assert selection.selected_features == []

    def test_target_correlation_selection(self):
        """With targets, only features correlated with the target are kept."""
        n = 400
        target = np.tile([1.0, -1.0, 1.0, -1.0], n // 4)
        frame = pd.DataFrame({
            "signal": target * 3.0 + 10.0,
            "orthogonal": np.tile([1.0, 1.0, -1.0, -1.0], n // 4),
            "constant": np.ones(n),
        })
        selection = select_features(frame, targets=target)
        assert selection.method == "target_correlation"
        assert selection.selected_features == ["signal"]
        assert selection.importance_scores["signal"] == pytest.approx(1.0)
        assert selection.importance_scores["orthogonal"] == pytest.approx(0.0, abs=1e-12)
        assert selection.importance_scores["constant"] == 0.0

    def test_target_length_mismatch(self):
        with pytest.raises(ValueError):
            select_features(create_feature_frame(10), targets=[1, 2, 3])


class TestPreprocessingHelpers:
    """Test outlier clipping, polynomial terms and sequence windows."""

    def test_clip_outliers(self):
        frame = pd.DataFrame({"rpm": [1.0, 2.0, 3.0, 4.0, 100.0]})
        clipped = clip_outliers(frame, "rpm")
        # q1=2, q3=4, iqr=2 -> fences [-1, 7]
        assert clipped["rpm"].tolist() == [1.0, 2.0, 3.0, 4.0, 7.0]
        assert frame["rpm"].iloc[-1] == 100.0

    def test_clip_unknown_column(self):
        with pytest.raises(KeyError):
            clip_outliers(pd.DataFrame({"a": [1.0]}), "b")

    def test_polynomial_features(self):
        """Degree 2 adds squares and the pairwise interaction."""
        frame = pd.DataFrame({"rpm": [1.0, 2.0], "speed": [3.0, 4.0]}, index=[10, 20])
        expanded = polynomial_features(frame)
        assert list(expanded.columns) == ["rpm", "speed", "rpm^2", "rpm speed", "speed^2"]
        assert expanded.loc[10].tolist() == [1.0, 3.0, 1.0, 3.0, 9.0]
        assert expanded.loc[20].tolist() == [2.0, 4.0, 4.0, 8.0, 16.0]
        assert list(frame.columns) == ["rpm", "speed"]

    def test_polynomial_features_degree_three(self):
        frame = pd.DataFrame({"a": [2.0], "b": [3.0], "c": [5.0]})
        expanded = polynomial_features(frame, degree=3)
        assert expanded["a^3"].iloc[0] == 8.0
        assert expanded["a b c"].iloc[0] == 30.0
        assert expanded.shape == (1, 19)

    def test_polynomial_features_invalid(self):
        with pytest.raises(ValueError):
            polynomial_features(pd.DataFrame({"a": [1.0]}), degree=0)
        with pytest.raises(ValueError):
            polynomial_features(pd.DataFrame())

    def test_create_sequences(self):
        matrix = np.arange(20, dtype=float).reshape(10, 2)
        sequences, targets = create_sequences(matrix, sequence_length=3, horizon=2)
        assert sequences.shape == (6, 3, 2)
        assert targets.shape == (6, 2)
        assert sequences[0].tolist() == matrix[0:3].tolist()
        assert targets[0].tolist() == matrix[4].tolist()
        assert targets[-1].tolist() == matrix[9].tolist()

    def test_create_sequences_too_short(self):
        sequences, targets = create_sequences(np.zeros((3, 4)), sequence_length=5)
        assert sequences.shape == (0, 5, 4)
        assert targets.shape == (0, 4)
