"""
Feature Engine — Feature Extraction Orchestrator

Runs the WindowEngine over the whole Sequence and the
DerivedIndexCalculator per sample, then assembles one FeatureVector per
RawSample in schema order. Stateless and idempotent: same inputs always
produce same outputs.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from vehicle_ml.generator.schemas import RawSample

from .derived import DerivedIndexCalculator
from .registry import FeatureConfig, FeatureSchema, FeatureScope, build_feature_schema
from .schemas import FeatureVector
from .window import WindowEngine


logger = logging.getLogger(__name__)


class FeatureEngine:
    """
    Stateless feature extraction engine.

    len(output) == len(input) and output[i] describes input[i].
    """

    def __init__(
        self,
        schema: Optional[FeatureSchema] = None,
        timezone_name: str = "UTC",
    ):
        """
        Initialize the feature engine.

        Args:
            schema: Feature schema shared by both calculators
            timezone_name: IANA zone for time-of-day features
        """
        self.schema = schema or build_feature_schema()
        self.window_engine = WindowEngine(self.schema)
        self.derived_calculator = DerivedIndexCalculator(self.schema, timezone_name=timezone_name)

    @classmethod
    def from_settings(cls, settings) -> "FeatureEngine":
        schema = build_feature_schema(FeatureConfig.from_settings(settings))
        return cls(schema=schema, timezone_name=settings.TIMEZONE)

    @property
    def feature_names(self) -> Tuple[str, ...]:
        return self.schema.names

    def build(
        self,
        sequence: Sequence[RawSample],
        features: Optional[Iterable[str]] = None,
    ) -> List[FeatureVector]:
        """
        Engineer features for every sample of a chronological Sequence.

        Args:
            sequence: RawSamples, oldest first
            features: Subset of feature names (None = full schema).
                      Unknown names are logged and skipped.

        Returns:
            List of FeatureVector, one per sample
        """
        definitions = self.schema.resolve(features)
        names = tuple(d.name for d in definitions)
        if not sequence:
            return []

        windowed = self.window_engine.compute(sequence, names)
        windowed_columns = {name: windowed[name].to_numpy() for name in windowed.columns}
        sample_definitions = [d for d in definitions if d.scope == FeatureScope.SAMPLE]

        vectors = []
        for i, sample in enumerate(sequence):
            derived = self.derived_calculator.evaluate(sample, sample_definitions)
            values = []
            for name in names:
                value = derived[name] if name in derived else float(windowed_columns[name][i])
                values.append(value if math.isfinite(value) else 0.0)
            vectors.append(FeatureVector(timestamp_ms=sample.timestamp_ms, names=names, values=values))

        logger.debug(f"[FeatureEngine] Built {len(vectors)} vectors x {len(names)} features")
        return vectors
