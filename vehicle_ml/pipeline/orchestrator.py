"""
Pipeline Orchestrator — Training, Real-Time and Anomaly Entry Points

Wires a data source, the feature engine, the normalizer and the anomaly
detector into the three modes collaborators call:

- Training: history (+ synthetic augmentation) -> features -> fit stats
  -> normalize -> quality/selection reports
- Real-time: recent window -> features -> normalize with frozen stats
- Anomaly: recent window -> features -> batch z-score flags

Training and real-time share one FeatureSchema and one Normalizer, so a
real-time vector is scaled with exactly the numbers the training matrix
was scaled with.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from vehicle_ml.config import Settings, settings as default_settings
from vehicle_ml.exceptions import ConfigurationError, NoDataAvailableError
from vehicle_ml.features.calculator import encode_fault_label
from vehicle_ml.features.engine import FeatureEngine
from vehicle_ml.features.schemas import vectors_to_frame
from vehicle_ml.generator.generator import SyntheticSampleGenerator
from vehicle_ml.generator.schemas import RAW_NUMERIC_FIELDS, RawSample
from vehicle_ml.ml.anomaly import AnomalyDetector, AnomalyResult
from vehicle_ml.ml.normalizer import NormalizationStats, Normalizer, load_stats, save_stats
from vehicle_ml.ml.validation import select_features, validate_feature_quality
from vehicle_ml.storage.base import SensorDataSource, TimeBound

from .schemas import PipelineState, RealtimeFeatures, TrainingDataset, TrainingMetadata


logger = logging.getLogger(__name__)


def _chronological(samples: Sequence[RawSample]) -> List[RawSample]:
    return sorted(samples, key=lambda s: s.timestamp_ms)


class PipelineOrchestrator:
    """
    Stateful pipeline over one data source.

    State: Uninitialized -> Initialized (probe read done) -> Ready
    (normalization stats frozen by training or loaded from disk).

    Usage:
        pipeline = PipelineOrchestrator(InMemorySampleStore(samples))
        pipeline.initialize()
        dataset = pipeline.process_for_training()
        live = pipeline.process_realtime()
    """

    def __init__(
        self,
        source: SensorDataSource,
        settings: Optional[Settings] = None,
        generator: Optional[SyntheticSampleGenerator] = None,
        engine: Optional[FeatureEngine] = None,
        normalizer: Optional[Normalizer] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Data Store collaborator
            settings: Settings override (default: module singleton)
            generator: Synthetic sample generator for augmentation
            engine: Feature engine (default: built from settings)
            normalizer: Normalizer instance (default: a new, unfit one)
        """
        self.settings = settings or default_settings
        self.source = source
        self.engine = engine or FeatureEngine.from_settings(self.settings)
        self.generator = generator or SyntheticSampleGenerator(
            seed=self.settings.SYNTHETIC_SEED,
            interval_ms=int(self.settings.SAMPLE_INTERVAL_S * 1000),
        )
        self.normalizer = normalizer or Normalizer()
        self.detector = AnomalyDetector(min_samples=self.settings.ANOMALY_MIN_SAMPLES)
        self.synthetic_mode = False
        self._state = PipelineState.UNINITIALIZED

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == PipelineState.READY

    @property
    def feature_names(self) -> List[str]:
        return list(self.engine.feature_names)

    def _require_initialized(self, operation: str) -> None:
        if self._state == PipelineState.UNINITIALIZED:
            raise ConfigurationError(f"Pipeline not initialized. Call initialize() before {operation}.")

    def _check_feature_order(self, stats: NormalizationStats) -> None:
        """Frozen stats must describe exactly the features this engine produces."""
        expected = list(self.engine.feature_names)
        if stats.feature_order == expected:
            return
        missing = [name for name in stats.feature_order if name not in self.engine.schema]
        extra = [name for name in expected if name not in stats.feature_order]
        detail = f"unknown: {missing}, not fitted: {extra}" if missing or extra else "feature order differs"
        raise ConfigurationError(
            f"Normalization stats {stats.stats_id[:8]} do not match the feature schema ({detail})"
        )

    def initialize(self) -> PipelineState:
        """
        Probe the data source and move to Initialized.

        An empty probe is not a failure: the pipeline continues in
        synthetic-augmented mode. Errors raised by the source propagate.
        """
        probe = self.source.query_historical(1)
        if not probe:
            self.synthetic_mode = True
            logger.warning("[Pipeline] Data source returned no samples; training will rely on synthetic data")
        else:
            self.synthetic_mode = False

        self._state = PipelineState.READY if self.normalizer.is_fitted else PipelineState.INITIALIZED
        logger.info(
            f"[Pipeline] Initialized with {len(self.engine.feature_names)} features "
            f"(synthetic_mode={self.synthetic_mode})"
        )
        return self._state

    # =========================================================================
    # TRAINING MODE
    # =========================================================================

    def _collect_training_samples(
        self,
        limit: int,
        start_time: TimeBound,
        end_time: TimeBound,
        include_synthetic: bool,
    ):
        real = _chronological(self.source.query_historical(limit, start_time=start_time, end_time=end_time))
        synthetic: List[RawSample] = []

        minimum = self.settings.MIN_TRAINING_SAMPLES
        if include_synthetic and len(real) < minimum:
            count = max(self.settings.SYNTHETIC_SAMPLE_COUNT, minimum - len(real))
            end_ms = real[0].timestamp_ms if real else None
            synthetic = self.generator.generate_batch(count, end_ms=end_ms)
            logger.warning(
                f"[Pipeline] Only {len(real)} real samples (< {minimum}); "
                f"prepending {len(synthetic)} synthetic samples"
            )

        return real, synthetic

    def _extract_targets(self, samples: Sequence[RawSample], target_field: str) -> np.ndarray:
        if target_field == "fault_scenario":
            return np.array([encode_fault_label(s.fault_scenario) for s in samples], dtype=np.int64)
        if target_field in RAW_NUMERIC_FIELDS:
            return np.array([getattr(s, target_field) for s in samples], dtype=np.float64)
        raise ConfigurationError(f"Unknown target field '{target_field}'")

    def process_for_training(
        self,
        limit: Optional[int] = None,
        start_time: TimeBound = None,
        end_time: TimeBound = None,
        include_synthetic: bool = True,
        target_field: Optional[str] = None,
    ) -> TrainingDataset:
        """
        Build the engineered, normalized training set and freeze stats.

        Args:
            limit: Max historical samples (default: TRAINING_LIMIT)
            start_time: Inclusive lower time bound
            end_time: Inclusive upper time bound
            include_synthetic: Augment when history is below MIN_TRAINING_SAMPLES
            target_field: "fault_scenario" or a raw numeric field to use as target

        Returns:
            TrainingDataset

        Raises:
            ConfigurationError: If initialize() was not called or the target is unknown
            NoDataAvailableError: If there are no samples and augmentation is off
        """
        self._require_initialized("process_for_training()")
        if limit is None:
            limit = self.settings.TRAINING_LIMIT

        real, synthetic = self._collect_training_samples(limit, start_time, end_time, include_synthetic)
        samples = _chronological(synthetic + real)
        if not samples:
            raise NoDataAvailableError("No training samples available and synthetic augmentation is disabled")

        targets = self._extract_targets(samples, target_field) if target_field else None

        vectors = self.engine.build(samples)
        stats = self.normalizer.fit(vectors, self.engine.feature_names)
        normalized = self.normalizer.transform(vectors)
        frame = vectors_to_frame(normalized)

        quality = validate_feature_quality(frame, targets)
        selection = select_features(frame, targets)

        metadata = TrainingMetadata(
            real_sample_count=len(real),
            synthetic_sample_count=len(synthetic),
            total_samples=len(samples),
            feature_count=len(stats.feature_order),
            synthetic_augmented=bool(synthetic),
            target_field=target_field,
            stats_id=stats.stats_id,
        )
        self._state = PipelineState.READY
        logger.info(
            f"[Pipeline] Training set ready: {len(samples)} samples "
            f"({len(real)} real, {len(synthetic)} synthetic) x {metadata.feature_count} features"
        )

        return TrainingDataset(
            features=frame,
            vectors=normalized,
            feature_names=list(stats.feature_order),
            selection=selection,
            quality=quality,
            stats=stats,
            metadata=metadata,
            targets=targets,
        )

    # =========================================================================
    # REAL-TIME MODE
    # =========================================================================

    def process_realtime(self, window_size: Optional[int] = None) -> RealtimeFeatures:
        """
        Engineer and normalize the most recent window.

        Uses the feature order and statistics frozen by training (or
        loaded from disk). Never refits.

        Raises:
            ConfigurationError: If no normalization stats exist yet, or they
                were fitted for a different feature schema
            NoDataAvailableError: If the source returns no samples
        """
        if not self.normalizer.is_fitted:
            raise ConfigurationError(
                "Real-time processing requires normalization stats. "
                "Run process_for_training() or load_normalization_stats() first."
            )
        stats = self.normalizer.stats
        self._check_feature_order(stats)
        if window_size is None:
            window_size = self.settings.REALTIME_WINDOW

        samples = _chronological(self.source.query_recent(window_size))
        if not samples:
            raise NoDataAvailableError(f"No recent samples available (window={window_size})")

        vectors = self.engine.build(samples, features=stats.feature_order)
        normalized = self.normalizer.transform(vectors)
        logger.debug(f"[Pipeline] Real-time window of {len(normalized)} samples normalized")

        return RealtimeFeatures(
            vectors=normalized,
            stats_id=stats.stats_id,
            window_size=window_size,
            feature_names=list(normalized[0].names),
        )

    # =========================================================================
    # ANOMALY MODE
    # =========================================================================

    def process_for_anomaly_detection(
        self,
        samples: Optional[Sequence[RawSample]] = None,
    ) -> List[AnomalyResult]:
        """
        Flag outliers in a batch against its own distribution.

        Args:
            samples: Samples to check (default: most recent ANOMALY_WINDOW)

        Returns:
            One AnomalyResult per sample, oldest first

        Raises:
            ConfigurationError: If reading from the source before initialize()
            NoDataAvailableError: If there are no samples
        """
        if samples is None:
            self._require_initialized("process_for_anomaly_detection()")
            samples = self.source.query_recent(self.settings.ANOMALY_WINDOW)
        samples = _chronological(samples)
        if not samples:
            raise NoDataAvailableError("No samples available for anomaly detection")

        vectors = self.engine.build(samples)
        return self.detector.score(
            vectors,
            self.settings.ANOMALY_FEATURES,
            zscore_threshold=self.settings.ANOMALY_ZSCORE_THRESHOLD,
            anomaly_threshold=self.settings.ANOMALY_SCORE_THRESHOLD,
        )

    # =========================================================================
    # PERSISTENCE / EXPORT
    # =========================================================================

    def save_normalization_stats(self, directory: Optional[str] = None) -> Path:
        """Persist the frozen stats as JSON. Raises if nothing is fitted."""
        path = save_stats(self.normalizer.stats, directory or self.settings.STATS_DIR)
        logger.info(f"[Pipeline] Normalization stats saved to {path}")
        return path

    def load_normalization_stats(self, filepath) -> NormalizationStats:
        """
        Adopt stats saved by a previous process and move to Ready.

        Raises:
            ConfigurationError: If the stats were fitted for a different
                feature schema (e.g. other LAG_STEPS)
        """
        stats = load_stats(filepath)
        self._check_feature_order(stats)
        self.normalizer.load(stats)
        self._state = PipelineState.READY
        return stats

    def export_processed_data(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Run training mode and return a JSON-ready export.

        Keys: metadata, feature_names, timestamps, data (row-major matrix),
        targets, normalization_stats, quality, selection.
        """
        dataset = self.process_for_training(limit=limit)
        return {
            'metadata': dataset.metadata.model_dump(mode="json"),
            'feature_names': dataset.feature_names,
            'timestamps': [int(ts) for ts in dataset.features.index],
            'data': dataset.matrix.tolist(),
            'targets': dataset.targets.tolist() if dataset.targets is not None else None,
            'normalization_stats': dataset.stats.model_dump(mode="json"),
            'quality': dataset.quality.model_dump(),
            'selection': dataset.selection.model_dump(),
        }

    def get_data_statistics(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Summarize the history available for training.

        Args:
            limit: Max historical samples to inspect (default: TRAINING_LIMIT)

        Returns:
            Dict with count, date_range (ISO start/end, None when empty),
            raw_fields, feature_names and synthetic_mode

        Raises:
            ConfigurationError: If initialize() was not called
        """
        self._require_initialized("get_data_statistics()")
        if limit is None:
            limit = self.settings.TRAINING_LIMIT

        samples = self.source.query_historical(limit)
        date_range = None
        if samples:
            first = min(samples, key=lambda s: s.timestamp_ms)
            last = max(samples, key=lambda s: s.timestamp_ms)
            date_range = {'start': first.timestamp.isoformat(), 'end': last.timestamp.isoformat()}

        return {
            'count': len(samples),
            'date_range': date_range,
            'raw_fields': list(RawSample.model_fields),
            'feature_names': self.feature_names,
            'synthetic_mode': self.synthetic_mode,
        }

    def reset(self) -> None:
        """
        Drop stats, close the source if it can be closed, return to
        Uninitialized. A closed InfluxDB reader must be reconnected
        before the next initialize().
        """
        self.normalizer.reset()
        self.generator.reset()
        close = getattr(self.source, "close", None)
        if callable(close):
            close()
        self.synthetic_mode = False
        self._state = PipelineState.UNINITIALIZED
        logger.info("[Pipeline] Reset to uninitialized")
