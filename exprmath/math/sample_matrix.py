"""
Sample matrix implementation for exprmath.

This module provides an immutable samples-by-features matrix with named
rows and columns and an optional label vector, backed by a pandas
DataFrame.
"""

import logging
import numpy as np
import pandas as pd
from typing import Any, List, Optional, Sequence, Tuple, Union

from exprmath.math.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


ArrayLike = Union[np.ndarray, pd.DataFrame, Sequence[Sequence[float]], 'SampleMatrix']


def as_matrix(data: ArrayLike, min_samples: int = 1) -> np.ndarray:
    """
    Convert supported inputs to a 2-D float array and validate it.

    Args:
        data: SampleMatrix, DataFrame, numpy array or nested lists
        min_samples: Minimum number of rows required

    Returns:
        Float64 numpy array (a copy when conversion was needed)

    Raises:
        InvalidInputError: If the input is not a finite, non-empty 2-D matrix
            with at least min_samples rows
    """
    if isinstance(data, SampleMatrix):
        values = data.values
    elif isinstance(data, pd.DataFrame):
        try:
            values = data.to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Matrix contains non-numeric values: {e}") from e
    else:
        try:
            values = np.asarray(data, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Matrix contains non-numeric values: {e}") from e

    if values.ndim != 2:
        raise InvalidInputError(f"Expected a 2-D matrix, got {values.ndim} dimension(s)")

    if values.shape[1] == 0:
        raise InvalidInputError("Matrix has no features")

    if values.shape[0] < min_samples:
        raise InvalidInputError(
            f"At least {min_samples} sample(s) required, got {values.shape[0]}"
        )

    if not np.all(np.isfinite(values)):
        raise InvalidInputError("Matrix contains missing or non-finite values")

    return values


class SampleMatrix:
    """
    An immutable matrix of samples (rows) by features (columns).

    Row order is the sample identity used throughout the package. The
    optional label vector is descriptive metadata only; it is never read
    by PCA or clustering, just by the comparison helpers.
    """

    def __init__(self,
                 values: Union[np.ndarray, pd.DataFrame, Sequence[Sequence[float]]],
                 sample_ids: Optional[Sequence[Any]] = None,
                 feature_names: Optional[Sequence[Any]] = None,
                 labels: Optional[Sequence[Any]] = None):
        """
        Initialize a SampleMatrix.

        Args:
            values: Matrix data (numpy array, nested lists or DataFrame)
            sample_ids: Row names (defaults to the DataFrame index or 0..n-1)
            feature_names: Column names (defaults to the DataFrame columns or 0..m-1)
            labels: Optional category label per sample
        """
        array = as_matrix(values)

        if isinstance(values, pd.DataFrame):
            rows = list(values.index) if sample_ids is None else list(sample_ids)
            cols = list(values.columns) if feature_names is None else list(feature_names)
        else:
            rows = list(range(array.shape[0])) if sample_ids is None else list(sample_ids)
            cols = list(range(array.shape[1])) if feature_names is None else list(feature_names)

        if len(rows) != array.shape[0]:
            raise InvalidInputError(
                f"Got {len(rows)} sample ids for {array.shape[0]} samples"
            )
        if len(cols) != array.shape[1]:
            raise InvalidInputError(
                f"Got {len(cols)} feature names for {array.shape[1]} features"
            )

        if labels is not None:
            labels = tuple(str(label) for label in labels)
            if len(labels) != array.shape[0]:
                raise InvalidInputError(
                    f"Got {len(labels)} labels for {array.shape[0]} samples"
                )

        array = array.copy()
        array.setflags(write=False)

        self._values = array
        self._frame = pd.DataFrame(array, index=rows, columns=cols, copy=False)
        self._labels = labels

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame,
                       label_column: Optional[Any] = None) -> 'SampleMatrix':
        """
        Build a SampleMatrix from a DataFrame, optionally taking the labels
        from one of its columns.

        Args:
            df: DataFrame with samples as rows
            label_column: Name of the column holding the labels

        Returns:
            A new SampleMatrix
        """
        labels = None
        if label_column is not None:
            if label_column not in df.columns:
                raise InvalidInputError(f"Label column '{label_column}' not found")
            labels = df[label_column].tolist()
            df = df.drop(columns=[label_column])

        return cls(df, labels=labels)

    @property
    def values(self) -> np.ndarray:
        """Get the matrix as a read-only numpy array."""
        return self._values

    @property
    def labels(self) -> Optional[Tuple[str, ...]]:
        """Get the label vector, or None if the matrix is unlabelled."""
        return self._labels

    @property
    def shape(self) -> Tuple[int, int]:
        return self._values.shape

    @property
    def n_samples(self) -> int:
        return self._values.shape[0]

    @property
    def n_features(self) -> int:
        return self._values.shape[1]

    def sample_ids(self) -> List[Any]:
        """Get the list of sample ids (row names)."""
        return list(self._frame.index)

    def feature_names(self) -> List[Any]:
        """Get the list of feature names (column names)."""
        return list(self._frame.columns)

    def to_dataframe(self) -> pd.DataFrame:
        """Get a copy of the matrix as a DataFrame."""
        return self._frame.copy()

    def with_labels(self, labels: Optional[Sequence[Any]]) -> 'SampleMatrix':
        """Return a copy of this matrix carrying a different label vector."""
        return SampleMatrix(self._values, self.sample_ids(), self.feature_names(), labels)

    def feature_subset(self, names: Sequence[Any]) -> 'SampleMatrix':
        """
        Create a matrix with only the specified features, in the given order.

        Args:
            names: Feature names to keep

        Returns:
            A new SampleMatrix
        """
        missing = [name for name in names if name not in self._frame.columns]
        if missing:
            raise KeyError(f"Feature(s) not found: {missing[:10]}")

        subset = self._frame[list(names)]
        return SampleMatrix(subset, labels=self._labels)

    def constant_features(self) -> List[int]:
        """Get the column indices of features with a single distinct value."""
        spread = np.ptp(self._values, axis=0)
        return np.flatnonzero(spread == 0).tolist()

    def drop_constant_features(self) -> 'SampleMatrix':
        """
        Create a matrix without zero-variance features.

        This is the usual remedy before scaling to unit variance, since
        constant columns cannot be scaled.

        Returns:
            A new SampleMatrix
        """
        constant = set(self.constant_features())
        if not constant:
            return self

        logger.info(f"Dropping {len(constant)} constant feature(s)")
        names = self.feature_names()
        keep = [name for i, name in enumerate(names) if i not in constant]
        if not keep:
            raise InvalidInputError("Every feature is constant")
        return self.feature_subset(keep)

    def label_counts(self) -> pd.Series:
        """
        Count samples per label, sorted by label.

        Returns:
            Series indexed by label
        """
        if self._labels is None:
            raise InvalidInputError("Matrix has no labels")
        return pd.Series(self._labels).value_counts().sort_index()

    def __len__(self) -> int:
        return self.n_samples

    def __repr__(self) -> str:
        labelled = ", labelled" if self._labels is not None else ""
        return f"SampleMatrix(samples={self.n_samples}, features={self.n_features}{labelled})"
