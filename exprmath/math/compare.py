"""
Comparison of cluster assignments with each other and with known labels.
"""

import numpy as np
import pandas as pd
from typing import Optional, Sequence

from scipy.optimize import linear_sum_assignment
from sklearn.metrics import adjusted_rand_score, rand_score

from exprmath.math.exceptions import InvalidInputError


def _check_aligned(a: Sequence, b: Sequence) -> None:
    if len(a) != len(b):
        raise InvalidInputError(f"Assignments have different lengths: {len(a)} and {len(b)}")
    if len(a) == 0:
        raise InvalidInputError("Assignments are empty")


def crosstab(assignment: Sequence, labels: Sequence,
             row_name: str = 'cluster', col_name: str = 'label') -> pd.DataFrame:
    """
    Contingency table of cluster ids against labels.

    Args:
        assignment: Cluster id per sample
        labels: Label (or second cluster id) per sample
        row_name: Name of the row axis
        col_name: Name of the column axis

    Returns:
        DataFrame of counts, rows sorted by cluster id, columns by label
    """
    _check_aligned(assignment, labels)
    return pd.crosstab(
        pd.Series(list(assignment), name=row_name),
        pd.Series(list(labels), name=col_name)
    )


def rand_index(a: Sequence, b: Sequence) -> float:
    """
    Rand index between two partitions: the fraction of sample pairs on
    which they agree (same cluster in both, or different in both).
    """
    _check_aligned(a, b)
    return float(rand_score(list(a), list(b)))


def adjusted_rand_index(a: Sequence, b: Sequence) -> float:
    """Rand index corrected for chance (1 for identical partitions)."""
    _check_aligned(a, b)
    return float(adjusted_rand_score(list(a), list(b)))


def agreement(a: Sequence, b: Sequence) -> float:
    """
    Fraction of samples on which two partitions agree under the best
    one-to-one matching of their cluster ids.

    Args:
        a: First partition
        b: Second partition

    Returns:
        Matching accuracy in [0, 1]
    """
    table = crosstab(a, b)
    rows, cols = linear_sum_assignment(table.values, maximize=True)
    return float(table.values[rows, cols].sum() / len(a))


def purity(assignment: Sequence, labels: Sequence) -> float:
    """
    Fraction of samples whose cluster's majority label matches their own.
    """
    table = crosstab(assignment, labels)
    return float(table.max(axis=1).sum() / len(assignment))


def compare_assignments(a: Sequence, b: Optional[Sequence]) -> dict:
    """
    Summary scores of one partition against another (or against labels).

    Args:
        a: First partition
        b: Second partition, or None

    Returns:
        Dictionary of scores (empty if b is None)
    """
    if b is None:
        return {}
    return {
        'rand_index': rand_index(a, b),
        'adjusted_rand_index': adjusted_rand_index(a, b),
        'agreement': agreement(a, b),
        'purity': purity(a, b),
    }
