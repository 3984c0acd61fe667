"""
Loading sample matrices from files and generating synthetic ones.
"""

import logging
import os
import numpy as np
import pandas as pd
from typing import Any, Optional

from exprmath.math.exceptions import InvalidInputError
from exprmath.math.sample_matrix import SampleMatrix

logger = logging.getLogger(__name__)


def _separator(path: str) -> str:
    return '\t' if path.endswith(('.tsv', '.tab', '.txt')) else ','


def load_labels(path: str) -> list:
    """
    Load a label vector from a one-column file (with a header line).

    Args:
        path: Path to the labels file

    Returns:
        List of labels in file order
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Labels file not found: {path}")

    labels_df = pd.read_csv(path, sep=_separator(path), dtype=str)
    if labels_df.shape[1] == 2:
        # Index column written alongside the labels
        labels_df = labels_df.iloc[:, 1:]
    if labels_df.shape[1] != 1:
        raise InvalidInputError(f"Expected a single label column in {path}, got {labels_df.shape[1]}")

    return labels_df.iloc[:, 0].tolist()


def load_sample_matrix(path: str,
                       label_column: Optional[Any] = None,
                       labels_path: Optional[str] = None,
                       index_col: Optional[int] = 0) -> SampleMatrix:
    """
    Load a samples-by-features matrix from a CSV or TSV file.

    Args:
        path: Path to the matrix file, one row per sample with a header
        label_column: Column of the file holding the sample labels
        labels_path: Separate file holding the sample labels
        index_col: Column holding the sample ids (None for none)

    Returns:
        SampleMatrix
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Matrix file not found: {path}")
    if label_column is not None and labels_path is not None:
        raise InvalidInputError("Give either label_column or labels_path, not both")

    df = pd.read_csv(path, sep=_separator(path), index_col=index_col)
    if index_col is not None and pd.api.types.is_float_dtype(df.index):
        logger.warning(f"Sample ids in {path} are measurements; "
                       f"the file may have no id column (use index_col=None)")

    if labels_path is not None:
        matrix = SampleMatrix(df, labels=load_labels(labels_path))
    else:
        matrix = SampleMatrix.from_dataframe(df, label_column=label_column)

    logger.info(f"Loaded {matrix.n_samples} samples with {matrix.n_features} features from {path}")
    return matrix


def make_blobs_matrix(n_samples: int = 64,
                      n_features: int = 6830,
                      n_groups: int = 4,
                      separation: float = 3.0,
                      noise: float = 1.0,
                      seed: Optional[int] = None) -> SampleMatrix:
    """
    Generate a labelled matrix of well-separated Gaussian blobs.

    Each group gets a random mean vector with entries drawn from
    N(0, separation^2); samples add N(0, noise^2) noise to their group mean.
    Samples are assigned to groups round-robin and then shuffled.

    Args:
        n_samples: Number of samples
        n_features: Number of features
        n_groups: Number of groups (blobs)
        separation: Spread of the group means
        noise: Within-group standard deviation
        seed: Seed for reproducibility

    Returns:
        SampleMatrix labelled 'group-1'..'group-g'
    """
    if n_groups < 1 or n_groups > n_samples:
        raise InvalidInputError(f"Number of groups must be in [1, {n_samples}], got {n_groups}")

    rng = np.random.default_rng(seed)
    means = rng.normal(0.0, separation, size=(n_groups, n_features))
    groups = rng.permutation(np.arange(n_samples) % n_groups)
    values = means[groups] + rng.normal(0.0, noise, size=(n_samples, n_features))

    sample_ids = [f"S{i + 1}" for i in range(n_samples)]
    feature_names = [f"G{j + 1}" for j in range(n_features)]
    labels = [f"group-{g + 1}" for g in groups]

    return SampleMatrix(values, sample_ids, feature_names, labels)
