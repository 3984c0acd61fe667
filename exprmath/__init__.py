"""
Exprmath package for unsupervised analysis of gene-expression matrices.

This is a small numerical library around standardization, PCA,
hierarchical clustering and k-means, plus the analysis driver that runs
them on a labelled samples-by-genes matrix.
"""

__version__ = '0.1.0'

from exprmath.components.config import Config, ConfigManager
from exprmath.math import (
    DegenerateFeatureError, InvalidInputError, SampleMatrix,
    distance_matrix, hclust, kmeans, pca, standardize
)
