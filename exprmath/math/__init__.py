"""
Core numerical routines for unsupervised analysis of expression matrices.

This module contains implementations of:
- Feature standardization
- Pairwise Euclidean distances
- Principal Component Analysis (PCA)
- Agglomerative hierarchical clustering
- K-means clustering
- Comparison of partitions and linear SVM classification
"""

from exprmath.math.exceptions import DegenerateFeatureError, ExprMathError, InvalidInputError
from exprmath.math.sample_matrix import SampleMatrix
from exprmath.math.standardize import Standardization, standardize
from exprmath.math.distance import distance_matrix
from exprmath.math.pca import PCAResult, pca
from exprmath.math.hclust import Dendrogram, cut_tree, hclust
from exprmath.math.clusters import KMeansResult, kmeans

__all__ = [
    'DegenerateFeatureError',
    'ExprMathError',
    'InvalidInputError',
    'SampleMatrix',
    'Standardization',
    'standardize',
    'distance_matrix',
    'PCAResult',
    'pca',
    'Dendrogram',
    'cut_tree',
    'hclust',
    'KMeansResult',
    'kmeans',
]
