"""
Anomaly Detector Tests

Tests verify:
- Fewer than 10 valid values is a no-op
- Outliers beyond the threshold are flagged
- z-scores use the batch mean and sample std
- Missing values and zero-variance batches never flag
- Multi-feature aggregate score and is_anomaly threshold
"""

import numpy as np
import pytest

from vehicle_ml.features import FeatureVector
from vehicle_ml.ml import AnomalyDetector, AnomalyResult


def create_batch(values, feature: str = "rpm"):
    return [{"timestamp_ms": i * 2000, feature: v} for i, v in enumerate(values)]


def create_spike_batch():
    """17 zeros and one 100: the spike sits about 4 sample std from the mean."""
    return create_batch([0.0] * 17 + [100.0])


class TestDetect:
    """Test single-feature detection."""

    def test_small_batch_is_noop(self):
        """Nine samples are returned unchanged."""
        batch = create_batch([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 100.0])
        result = AnomalyDetector().detect(batch, "rpm")
        assert result == batch
        assert "rpm_anomaly" not in result[0]

    def test_missing_values_count_toward_minimum(self):
        """Only non-missing values count toward the 10-sample minimum."""
        batch = create_batch([1.0] * 9 + [None, float("nan"), "x"])
        result = AnomalyDetector().detect(batch, "rpm")
        assert result == batch

    def test_spike_is_flagged(self):
        """A value about 4 std from the mean is flagged at threshold 3."""
        result = AnomalyDetector().detect(create_spike_batch(), "rpm", threshold=3)
        assert result[-1]["rpm_anomaly"] is True
        assert result[-1]["rpm_zscore"] == pytest.approx(17 / np.sqrt(18))
        assert not any(r["rpm_anomaly"] for r in result[:-1])
        assert result[0]["rpm_zscore"] == pytest.approx(-1 / np.sqrt(18))

    def test_threshold_respected(self):
        """Raising the threshold above the spike z-score clears the flag."""
        result = AnomalyDetector().detect(create_spike_batch(), "rpm", threshold=4.5)
        assert not any(r["rpm_anomaly"] for r in result)

    def test_zscore_matches_sample_statistics(self):
        np.random.seed(42)
        values = np.random.normal(50.0, 5.0, 40)
        result = AnomalyDetector().detect(create_batch(values), "rpm")
        expected = (values - values.mean()) / values.std(ddof=1)
        assert [r["rpm_zscore"] for r in result] == pytest.approx(expected.tolist())

    def test_constant_batch_never_flags(self):
        result = AnomalyDetector().detect(create_batch([5.0] * 12), "rpm")
        assert all(r["rpm_zscore"] == 0.0 for r in result)
        assert not any(r["rpm_anomaly"] for r in result)

    def test_missing_record_gets_zero(self):
        batch = create_spike_batch() + [{"timestamp_ms": 99}]
        result = AnomalyDetector().detect(batch, "rpm")
        assert result[-1]["rpm_zscore"] == 0.0
        assert result[-1]["rpm_anomaly"] is False

    def test_input_not_mutated(self):
        batch = create_spike_batch()
        AnomalyDetector().detect(batch, "rpm")
        assert "rpm_zscore" not in batch[0]

    def test_accepts_feature_vectors(self):
        """FeatureVectors are read as mappings; results are plain dicts."""
        batch = [
            FeatureVector(timestamp_ms=i, names=("rpm",), values=(v,))
            for i, v in enumerate([0.0] * 17 + [100.0])
        ]
        result = AnomalyDetector().detect(batch, "rpm")
        assert result[-1]["rpm_anomaly"] is True
        assert result[-1]["rpm"] == 100.0

    def test_invalid_min_samples(self):
        with pytest.raises(ValueError):
            AnomalyDetector(min_samples=1)


class TestScore:
    """Test multi-feature aggregation."""

    def create_records(self):
        records = []
        for i in range(18):
            spike = i == 17
            records.append({
                "timestamp_ms": i * 2000,
                "rpm": 100.0 if spike else 0.0,
                "speed": 50.0 + (i % 2),
                "coolant_temp": 90.0 + (i % 3),
                "engine_load": 40.0 + (i % 4),
            })
        return records

    def test_single_feature_below_threshold(self):
        """One of four flagged gives 0.25, which is not anomalous."""
        results = AnomalyDetector().score(
            self.create_records(), ["rpm", "speed", "coolant_temp", "engine_load"], zscore_threshold=3.0,
        )
        assert len(results) == 18
        assert isinstance(results[-1], AnomalyResult)
        assert results[-1].flags["rpm"] is True
        assert results[-1].overall_anomaly_score == pytest.approx(0.25)
        assert results[-1].is_anomaly is False
        assert results[-1].timestamp_ms == 17 * 2000

    def test_half_flagged_is_anomalous(self):
        """One of two flagged gives 0.5 > 0.3."""
        results = AnomalyDetector().score(self.create_records(), ["rpm", "speed"], zscore_threshold=3.0)
        assert results[-1].overall_anomaly_score == pytest.approx(0.5)
        assert results[-1].is_anomaly is True
        assert results[0].is_anomaly is False

    def test_insufficient_feature_never_flags(self):
        """A feature with too few values is checked but not flagged."""
        records = self.create_records()
        for record in records[3:]:
            record.pop("speed")
        results = AnomalyDetector().score(records, ["rpm", "speed"], zscore_threshold=3.0)
        assert results[-1].flags == {"rpm": True, "speed": False}
        assert results[-1].zscores["speed"] == 0.0

    def test_empty_feature_list(self):
        results = AnomalyDetector().score(self.create_records(), [])
        assert all(r.overall_anomaly_score == 0.0 for r in results)
