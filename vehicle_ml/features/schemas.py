"""
Feature Vector — Engineered Output Record

One FeatureVector is produced per RawSample. It is an immutable mapping
from feature name to a finite float, keyed in schema order. Stages that
change values (normalization) build a new vector with replace_values().
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True, eq=False)
class FeatureVector(Mapping):
    """
    Ordered, read-only feature record.

    Attributes:
        timestamp_ms: Timestamp of the source sample (epoch ms, UTC)
        names: Feature identifiers in schema order
        values: Feature values aligned with names
    """
    timestamp_ms: int
    names: Tuple[str, ...]
    values: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "names", tuple(self.names))
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))
        if len(self.names) != len(self.values):
            raise ValueError(
                f"names/values length mismatch: {len(self.names)} != {len(self.values)}"
            )
        object.__setattr__(self, "_positions", {name: i for i, name in enumerate(self.names)})

    def __getitem__(self, name: str) -> float:
        return self.values[self._positions[name]]

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FeatureVector):
            return (
                self.timestamp_ms == other.timestamp_ms
                and self.names == other.names
                and self.values == other.values
            )
        return Mapping.__eq__(self, other)

    def __hash__(self) -> int:
        return hash((self.timestamp_ms, self.names, self.values))

    def __repr__(self) -> str:
        return f"FeatureVector(timestamp_ms={self.timestamp_ms}, features={len(self.names)})"

    def replace_values(self, values: Sequence[float]) -> "FeatureVector":
        """New vector with the same timestamp and names."""
        return FeatureVector(timestamp_ms=self.timestamp_ms, names=self.names, values=tuple(values))

    def to_dict(self) -> Dict[str, float]:
        return dict(zip(self.names, self.values))

    def to_array(self) -> np.ndarray:
        """1-D float64 array in schema order."""
        return np.asarray(self.values, dtype=np.float64)


def vectors_to_frame(vectors: Sequence[FeatureVector]) -> pd.DataFrame:
    """
    Stack vectors into a DataFrame indexed by timestamp_ms.

    Columns follow the first vector's order. All vectors from one schema
    share that order.
    """
    if not vectors:
        return pd.DataFrame()
    names = list(vectors[0].names)
    matrix = np.vstack([v.to_array() for v in vectors]) if names else np.empty((len(vectors), 0))
    index = pd.Index([v.timestamp_ms for v in vectors], name="timestamp_ms")
    return pd.DataFrame(matrix, columns=names, index=index)


def frame_to_vectors(frame: pd.DataFrame) -> List[FeatureVector]:
    """Inverse of vectors_to_frame."""
    names = tuple(str(c) for c in frame.columns)
    return [
        FeatureVector(timestamp_ms=int(ts), names=names, values=tuple(row))
        for ts, row in zip(frame.index, frame.to_numpy(dtype=np.float64))
    ]
