"""
PCA (Principal Component Analysis) implementation for exprmath.

This module computes principal components through the singular value
decomposition of the centered (and optionally scaled) data matrix, the
same decomposition R's ``prcomp`` uses.

The sign of each component is not identified by the decomposition. Other
libraries may return any column with its sign flipped; here each component
is oriented so that its largest-magnitude loading is positive.
"""

import logging
import numpy as np
import pandas as pd
from typing import Optional

from exprmath.math.exceptions import InvalidInputError
from exprmath.math.sample_matrix import ArrayLike, as_matrix
from exprmath.math.standardize import standardize

logger = logging.getLogger(__name__)


class PCAResult:
    """
    Principal components of a samples-by-features matrix.

    Attributes:
        loadings: Features x k matrix with orthonormal columns
        scores: Samples x k matrix, the standardized data times loadings
        center: Per-feature mean subtracted before the decomposition
        scale: Per-feature standard deviation divided out, or None
        explained_variance: Variance of each component, descending
        singular_values: Singular values of the standardized matrix
    """

    def __init__(self,
                 loadings: np.ndarray,
                 scores: np.ndarray,
                 center: np.ndarray,
                 scale: Optional[np.ndarray],
                 explained_variance: np.ndarray,
                 singular_values: np.ndarray):
        self.loadings = loadings
        self.scores = scores
        self.center = center
        self.scale = scale
        self.explained_variance = explained_variance
        self.singular_values = singular_values

    @property
    def n_components(self) -> int:
        return self.loadings.shape[1]

    @property
    def sdev(self) -> np.ndarray:
        """Standard deviation of each component."""
        return np.sqrt(self.explained_variance)

    @property
    def total_variance(self) -> float:
        return float(np.sum(self.explained_variance))

    @property
    def pve(self) -> np.ndarray:
        """Proportion of variance explained by each component."""
        total = self.total_variance
        if total == 0:
            return np.zeros_like(self.explained_variance)
        return self.explained_variance / total

    @property
    def cumulative_pve(self) -> np.ndarray:
        return np.cumsum(self.pve)

    def component_names(self):
        return [f"PC{i + 1}" for i in range(self.n_components)]

    def top_scores(self, n: int) -> np.ndarray:
        """
        Get the first n score vectors.

        Args:
            n: Number of leading components

        Returns:
            Samples x n matrix
        """
        if n < 1 or n > self.n_components:
            raise InvalidInputError(
                f"Number of score vectors must be in [1, {self.n_components}], got {n}"
            )
        return self.scores[:, :n]

    def project(self, data: ArrayLike) -> np.ndarray:
        """
        Project new samples onto the principal components.

        Args:
            data: Matrix with the same features as the fitted one

        Returns:
            Samples x k matrix of scores
        """
        values = as_matrix(data)
        if values.shape[1] != self.loadings.shape[0]:
            raise InvalidInputError(
                f"Expected {self.loadings.shape[0]} features, got {values.shape[1]}"
            )
        centered = values - self.center
        if self.scale is not None:
            centered = centered / self.scale
        return centered @ self.loadings

    def summary(self) -> pd.DataFrame:
        """
        Importance of components table.

        Returns:
            DataFrame with rows 'Standard deviation', 'Proportion of Variance'
            and 'Cumulative Proportion' and one column per component
        """
        return pd.DataFrame(
            [self.sdev, self.pve, self.cumulative_pve],
            index=['Standard deviation', 'Proportion of Variance', 'Cumulative Proportion'],
            columns=self.component_names()
        )

    def __repr__(self) -> str:
        return (f"PCAResult(components={self.n_components}, "
                f"features={self.loadings.shape[0]}, samples={self.scores.shape[0]})")


def orient_components(loadings: np.ndarray, scores: np.ndarray):
    """
    Flip components so that the largest-magnitude loading of each is positive.

    Args:
        loadings: Features x k matrix
        scores: Samples x k matrix

    Returns:
        Tuple of (loadings, scores) with consistent signs
    """
    pivots = np.argmax(np.abs(loadings), axis=0)
    signs = np.sign(loadings[pivots, np.arange(loadings.shape[1])])
    signs[signs == 0] = 1.0
    return loadings * signs, scores * signs


def pca(data: ArrayLike, scale: bool = False) -> PCAResult:
    """
    Compute the principal components of a matrix.

    The matrix is centered (and scaled to unit variance when scale is set),
    decomposed as U S V^T, and the right singular vectors become the
    loadings. Component variances are s_i^2 / (n - 1), so they sum to the
    total variance of the standardized matrix.

    Args:
        data: Samples-by-features matrix
        scale: Scale every feature to unit standard deviation first

    Returns:
        PCAResult with min(n_samples - 1, n_features) components

    Raises:
        InvalidInputError: If there are fewer than two samples
        DegenerateFeatureError: If scaling and some feature is constant
    """
    values = as_matrix(data, min_samples=2)
    n_samples, n_features = values.shape

    standardized = standardize(data if scale else values, center=True, scale=scale)
    centered = standardized.values

    u, s, vt = np.linalg.svd(centered, full_matrices=False)

    n_comps = min(n_samples - 1, n_features)
    s = s[:n_comps]
    loadings = vt[:n_comps].T
    scores = u[:, :n_comps] * s

    loadings, scores = orient_components(loadings, scores)
    variance = s ** 2 / (n_samples - 1)

    logger.debug(f"PCA on {n_samples}x{n_features} matrix: {n_comps} components, "
                 f"first PVE {variance[0] / max(variance.sum(), np.finfo(float).tiny):.4f}")

    return PCAResult(
        loadings=loadings,
        scores=scores,
        center=standardized.center,
        scale=standardized.scale,
        explained_variance=variance,
        singular_values=s
    )
