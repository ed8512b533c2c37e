"""
Preprocessing Helpers — Outlier Clipping, Polynomial Terms, Sequence Windows

Utilities for the Model Training collaborator. None of the helpers is part
of the default training path; all return new objects.
"""

from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import PolynomialFeatures


def clip_outliers(frame: pd.DataFrame, column: str, multiplier: float = 1.5) -> pd.DataFrame:
    """
    Clamp a column to its IQR fences.

    Fences: [q1 - multiplier * iqr, q3 + multiplier * iqr], quartiles by
    linear interpolation over the non-missing values.

    Returns:
        Copy of frame with the column clipped (unchanged if no values)
    """
    if column not in frame.columns:
        raise KeyError(f"Column '{column}' not found")
    result = frame.copy()
    values = pd.to_numeric(result[column], errors="coerce").dropna()
    if values.empty:
        return result

    q1 = values.quantile(0.25)
    q3 = values.quantile(0.75)
    iqr = q3 - q1
    result[column] = result[column].clip(lower=q1 - multiplier * iqr, upper=q3 + multiplier * iqr)
    return result


def create_sequences(
    matrix,
    sequence_length: int = 10,
    horizon: int = 1,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sliding windows for sequence models.

    Window i covers rows [i, i + sequence_length); its target is row
    i + sequence_length + horizon - 1.

    Args:
        matrix: 2-D array-like (rows = time steps)
        sequence_length: Rows per window
        horizon: Steps ahead of the window end to predict

    Returns:
        (sequences, targets) with shapes (k, sequence_length, n_features)
        and (k, n_features); k is 0 when the input is too short
    """
    if sequence_length < 1 or horizon < 1:
        raise ValueError("sequence_length and horizon must be >= 1")
    data = np.asarray(matrix, dtype=np.float64)
    if data.ndim == 1:
        data = data.reshape(-1, 1)

    count = len(data) - sequence_length - horizon + 1
    n_features = data.shape[1]
    if count <= 0:
        return (
            np.empty((0, sequence_length, n_features)),
            np.empty((0, n_features)),
        )

    sequences = np.stack([data[i:i + sequence_length] for i in range(count)])
    targets = data[sequence_length + horizon - 1:sequence_length + horizon - 1 + count]
    return sequences, targets


def polynomial_features(frame: pd.DataFrame, degree: int = 2) -> pd.DataFrame:
    """
    Expand numeric columns with powers and pairwise interaction terms.

    Column names follow scikit-learn's get_feature_names_out, e.g. for
    columns a, b at degree 2: a, b, a^2, a b, b^2.

    Args:
        frame: Numeric feature frame (missing values are not allowed)
        degree: Highest total degree of the generated terms

    Returns:
        New frame with the same index
    """
    if degree < 1:
        raise ValueError("degree must be >= 1")
    if frame.empty:
        raise ValueError("Cannot expand an empty frame")
    expander = PolynomialFeatures(degree=degree, include_bias=False)
    expanded = expander.fit_transform(frame.to_numpy(dtype=np.float64))
    columns = expander.get_feature_names_out([str(c) for c in frame.columns])
    return pd.DataFrame(expanded, index=frame.index, columns=list(columns))
