"""
Derived Index Calculator — Single-Sample Features

Raw pass-through signals, categorical codes, efficiency and health
indices and time-of-day flags. Each value needs one RawSample plus the
static lookup constants (vehicle weights, time zone).
"""

import logging
from typing import Dict, Iterable, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from vehicle_ml.generator.schemas import RawSample

from .calculator import DEFAULT_VEHICLE_WEIGHT_KG, VEHICLE_CLASS_WEIGHTS_KG, DerivedConstants
from .registry import FeatureDefinition, FeatureSchema, FeatureScope, build_feature_schema


logger = logging.getLogger(__name__)


class DerivedIndexCalculator:
    """
    Evaluates SAMPLE-scoped schema entries for one RawSample.

    Usage:
        calculator = DerivedIndexCalculator(timezone_name="Europe/Berlin")
        indices = calculator.compute(sample)
    """

    def __init__(
        self,
        schema: Optional[FeatureSchema] = None,
        vehicle_weights: Mapping[str, float] = VEHICLE_CLASS_WEIGHTS_KG,
        default_weight: float = DEFAULT_VEHICLE_WEIGHT_KG,
        timezone_name: str = "UTC",
    ):
        """
        Args:
            schema: Feature schema (default: full default schema)
            vehicle_weights: Curb weight (kg) per vehicle class
            default_weight: Weight used for unknown classes
            timezone_name: IANA zone for hour/peak/weekend features
        """
        self.schema = schema or build_feature_schema()
        self.constants = DerivedConstants(
            vehicle_weights=dict(vehicle_weights),
            default_weight=default_weight,
            tz=ZoneInfo(timezone_name),
        )
        self._all = self.schema.by_scope(FeatureScope.SAMPLE)

    def compute(self, sample: RawSample, features: Optional[Iterable[str]] = None) -> Dict[str, float]:
        """
        Compute single-sample features.

        Args:
            sample: The reading to evaluate
            features: Names to compute (None = every sample feature).
                      Sequence-scoped names are ignored.

        Returns:
            Dict of feature name -> finite float, in schema order
        """
        if features is None:
            definitions = self._all
        else:
            definitions = [
                d for d in self.schema.resolve(features)
                if d.scope == FeatureScope.SAMPLE
            ]
        return self.evaluate(sample, definitions)

    def evaluate(self, sample: RawSample, definitions: Sequence[FeatureDefinition]) -> Dict[str, float]:
        """Evaluate already-resolved SAMPLE definitions on one reading."""
        return {d.name: float(d.compute(sample, self.constants)) for d in definitions}
