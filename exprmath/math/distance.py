"""
Pairwise Euclidean distances between samples.
"""

import numpy as np
from scipy.spatial.distance import pdist, squareform

from exprmath.math.sample_matrix import ArrayLike, as_matrix


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    Calculate Euclidean distance between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Euclidean distance
    """
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


def condensed_distances(data: ArrayLike) -> np.ndarray:
    """
    Calculate the condensed (upper triangle, row-major) distance vector.

    Args:
        data: Samples-by-features matrix with at least two samples

    Returns:
        Vector of n * (n - 1) / 2 pairwise distances
    """
    values = as_matrix(data, min_samples=2)
    return pdist(values, metric='euclidean')


def distance_matrix(data: ArrayLike) -> np.ndarray:
    """
    Calculate the n x n matrix of pairwise Euclidean distances.

    The result is exactly symmetric with a zero diagonal.

    Args:
        data: Samples-by-features matrix with at least two samples

    Returns:
        Matrix of pairwise distances

    Raises:
        InvalidInputError: If there are fewer than two samples
    """
    return squareform(condensed_distances(data), checks=False)
