"""
Tests for comparing partitions.
"""

import pytest
import numpy as np
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from exprmath.math.compare import (
    crosstab, rand_index, adjusted_rand_index, agreement, purity, compare_assignments
)
from exprmath.math.exceptions import InvalidInputError


@pytest.fixture
def clusters():
    return [1, 1, 2, 2, 3]


@pytest.fixture
def labels():
    return ['x', 'x', 'y', 'y', 'y']


class TestCrosstab:
    """Tests for the contingency table."""

    def test_counts(self, clusters, labels):
        """Test counting samples per cluster and label."""
        table = crosstab(clusters, labels)

        assert table.index.tolist() == [1, 2, 3]
        assert table.columns.tolist() == ['x', 'y']
        assert table.values.tolist() == [[2, 0], [0, 2], [0, 1]]
        assert table.values.sum() == len(clusters)
        assert table.index.name == 'cluster'
        assert table.columns.name == 'label'

    def test_numpy_input(self, labels):
        """Test a numpy assignment vector."""
        table = crosstab(np.array([2, 2, 1, 1, 1]), labels, row_name='kmeans', col_name='truth')
        assert table.loc[1, 'y'] == 3
        assert table.index.name == 'kmeans'

    def test_misaligned(self, labels):
        """Test that assignments of different length are rejected."""
        with pytest.raises(InvalidInputError):
            crosstab([1, 2], labels)
        with pytest.raises(InvalidInputError):
            crosstab([], [])


class TestScores:
    """Tests for the agreement scores."""

    def test_hand_checked(self, clusters, labels):
        """Test scores on a small example."""
        # 2 pairs together in both, 6 apart in both, out of 10
        assert rand_index(clusters, labels) == pytest.approx(0.8)
        assert purity(clusters, labels) == pytest.approx(1.0)
        # Best one-to-one matching covers 4 of 5 samples
        assert agreement(clusters, labels) == pytest.approx(0.8)
        assert adjusted_rand_index(clusters, labels) < 1.0

    def test_relabelling_invariance(self):
        """Test that renaming cluster ids does not change any score."""
        a = [1, 1, 2, 2, 3, 3, 3]
        b = [3, 3, 1, 1, 2, 2, 2]

        assert rand_index(a, b) == pytest.approx(1.0)
        assert adjusted_rand_index(a, b) == pytest.approx(1.0)
        assert agreement(a, b) == pytest.approx(1.0)
        assert purity(a, b) == pytest.approx(1.0)

    def test_single_cluster(self):
        """Test that one big cluster has low purity against balanced labels."""
        labels = ['a', 'b', 'a', 'b']
        assert purity([1, 1, 1, 1], labels) == pytest.approx(0.5)
        assert agreement([1, 1, 1, 1], labels) == pytest.approx(0.5)

    def test_compare_assignments(self, clusters, labels):
        """Test the combined summary."""
        scores = compare_assignments(clusters, labels)

        assert set(scores) == {'rand_index', 'adjusted_rand_index', 'agreement', 'purity'}
        assert scores['rand_index'] == pytest.approx(0.8)
        assert compare_assignments(clusters, None) == {}
