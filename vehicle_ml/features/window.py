"""
Window Engine — Sequence-Scoped Features

Computes rolling mean/std, rate of change, lag and moving-average features
for every index of a Sequence. Pure: output depends only on the Sequence
and the schema's FeatureConfig. Never raises on numeric edge cases; they
degrade to 0.0.
"""

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from vehicle_ml.generator.schemas import RawSample, samples_to_frame

from .registry import FeatureSchema, FeatureScope, build_feature_schema


logger = logging.getLogger(__name__)


class WindowEngine:
    """
    Evaluates SEQUENCE-scoped schema entries.

    Output has one row per input sample (positional index 0..n-1) and one
    column per requested windowed feature, in schema order.
    """

    def __init__(self, schema: Optional[FeatureSchema] = None):
        self.schema = schema or build_feature_schema()

    @property
    def window_size(self) -> int:
        return self.schema.config.window_size

    def compute(
        self,
        sequence: Sequence[RawSample],
        features: Optional[Iterable[str]] = None,
    ) -> pd.DataFrame:
        """
        Compute windowed features over a chronological Sequence.

        Args:
            sequence: RawSamples, oldest first
            features: Feature names to compute (None = every windowed feature).
                      Sample-scoped names are ignored; unknown names are
                      logged and skipped.

        Returns:
            DataFrame of len(sequence) rows
        """
        definitions = [
            d for d in self.schema.resolve(features)
            if d.scope == FeatureScope.SEQUENCE
        ]
        columns = [d.name for d in definitions]
        if not sequence:
            return pd.DataFrame(columns=columns, dtype="float64")

        frame = samples_to_frame(sequence)
        result = pd.DataFrame(index=pd.RangeIndex(len(sequence)))
        for definition in definitions:
            series = definition.compute(frame)
            result[definition.name] = (
                series.replace([np.inf, -np.inf], np.nan).fillna(0.0).to_numpy(dtype=np.float64)
            )

        logger.debug(
            f"[WindowEngine] {len(columns)} windowed features over {len(sequence)} samples"
        )
        return result[columns]
