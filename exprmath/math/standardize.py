"""
Feature standardization for exprmath.

Centers each feature (column) to zero mean and optionally scales it to
unit sample standard deviation, mirroring R's ``scale()``.
"""

import logging
import numpy as np
from typing import Optional

from exprmath.math.exceptions import DegenerateFeatureError, InvalidInputError
from exprmath.math.sample_matrix import ArrayLike, SampleMatrix, as_matrix

logger = logging.getLogger(__name__)


class Standardization:
    """
    Result of standardizing a matrix.

    Attributes:
        values: Standardized matrix (same shape as the input)
        center: Per-feature value subtracted from each column
        scale: Per-feature standard deviation divided out, or None
    """

    def __init__(self, values: np.ndarray, center: np.ndarray, scale: Optional[np.ndarray]):
        self.values = values
        self.center = center
        self.scale = scale

    @property
    def shape(self):
        return self.values.shape

    def apply(self, data: ArrayLike) -> np.ndarray:
        """
        Apply the stored center and scale to new samples.

        Args:
            data: Matrix with the same features as the fitted one

        Returns:
            Standardized copy of data
        """
        values = as_matrix(data)
        if values.shape[1] != self.center.shape[0]:
            raise InvalidInputError(
                f"Expected {self.center.shape[0]} features, got {values.shape[1]}"
            )
        out = values - self.center
        if self.scale is not None:
            out = out / self.scale
        return out

    def __repr__(self) -> str:
        return f"Standardization(shape={self.values.shape}, scaled={self.scale is not None})"


def column_sd(values: np.ndarray) -> np.ndarray:
    """
    Per-column sample standard deviation (n - 1 denominator).

    Args:
        values: 2-D array with at least two rows

    Returns:
        Standard deviation of each column
    """
    return np.std(values, axis=0, ddof=1)


def constant_columns(values: np.ndarray) -> np.ndarray:
    """Indices of columns whose values are all identical."""
    return np.flatnonzero(np.ptp(values, axis=0) == 0)


def standardize(data: ArrayLike, center: bool = True, scale: bool = True) -> Standardization:
    """
    Center and optionally scale every feature of a matrix.

    out[i, j] = (x[i, j] - mean_j) / (sd_j if scale else 1)

    Args:
        data: Samples-by-features matrix
        center: Subtract the column means
        scale: Divide by the column sample standard deviations

    Returns:
        Standardization holding the new matrix and the center/scale used

    Raises:
        InvalidInputError: If the matrix is malformed, or has fewer than two
            samples when scaling
        DegenerateFeatureError: If scaling and some feature is constant
    """
    values = as_matrix(data, min_samples=2 if scale else 1)

    means = values.mean(axis=0) if center else np.zeros(values.shape[1])
    out = values - means

    sds = None
    if scale:
        degenerate = constant_columns(values)
        if degenerate.size:
            names = None
            if isinstance(data, SampleMatrix):
                feature_names = data.feature_names()
                names = [feature_names[i] for i in degenerate]
            raise DegenerateFeatureError(degenerate.tolist(), names)

        if center:
            sds = column_sd(values)
        else:
            # Without centering R scales by the root mean square
            sds = np.sqrt(np.sum(values ** 2, axis=0) / (values.shape[0] - 1))
        out = out / sds

    logger.debug(f"Standardized {values.shape[0]}x{values.shape[1]} matrix "
                 f"(center={center}, scale={scale})")

    return Standardization(out, means, sds)
