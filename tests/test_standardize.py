"""
Tests for the standardization module.
"""

import pytest
import numpy as np
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from exprmath.math.standardize import standardize, column_sd, constant_columns
from exprmath.math.sample_matrix import SampleMatrix
from exprmath.math.exceptions import DegenerateFeatureError, InvalidInputError


@pytest.fixture
def random_data():
    rng = np.random.default_rng(7)
    return rng.normal(loc=5.0, scale=3.0, size=(30, 12))


class TestStandardize:
    """Tests for the standardize function."""

    def test_zero_mean_unit_sd(self, random_data):
        """Test that scaled columns have mean 0 and sd 1."""
        result = standardize(random_data, scale=True)

        assert result.values.shape == random_data.shape
        assert np.all(np.abs(result.values.mean(axis=0)) < 1e-9)
        assert np.all(np.abs(result.values.std(axis=0, ddof=1) - 1.0) < 1e-6)

    def test_center_and_scale_vectors(self, random_data):
        """Test that the returned center and scale are the column statistics."""
        result = standardize(random_data)

        assert np.allclose(result.center, random_data.mean(axis=0))
        assert np.allclose(result.scale, random_data.std(axis=0, ddof=1))

        expected = (random_data - random_data.mean(axis=0)) / random_data.std(axis=0, ddof=1)
        assert np.allclose(result.values, expected)

    def test_center_only(self, random_data):
        """Test centering without scaling."""
        result = standardize(random_data, scale=False)

        assert result.scale is None
        assert np.all(np.abs(result.values.mean(axis=0)) < 1e-9)
        assert np.allclose(result.values.std(axis=0, ddof=1), random_data.std(axis=0, ddof=1))

    def test_input_not_mutated(self, random_data):
        """Test that the input matrix is left untouched."""
        original = random_data.copy()
        standardize(random_data)
        assert np.array_equal(random_data, original)

    def test_constant_column(self):
        """Test that constant columns cannot be scaled."""
        data = np.array([
            [1.0, 0.1, 3.0],
            [2.0, 0.1, 1.0],
            [4.0, 0.1, 2.0]
        ])

        with pytest.raises(DegenerateFeatureError) as excinfo:
            standardize(data, scale=True)
        assert excinfo.value.features == [1]

        # Without scaling the column is fine
        result = standardize(data, scale=False)
        assert np.allclose(result.values[:, 1], 0.0)

    def test_constant_column_names(self):
        """Test that the error names the offending features of a SampleMatrix."""
        matrix = SampleMatrix(
            [[1.0, 2.0], [3.0, 2.0]],
            feature_names=['TP53', 'FLAT']
        )

        with pytest.raises(DegenerateFeatureError) as excinfo:
            standardize(matrix)
        assert excinfo.value.names == ['FLAT']
        assert isinstance(excinfo.value, ValueError)

    def test_too_few_samples(self):
        """Test that scaling needs two samples."""
        with pytest.raises(InvalidInputError):
            standardize(np.array([[1.0, 2.0]]), scale=True)

        result = standardize(np.array([[1.0, 2.0]]), scale=False)
        assert np.array_equal(result.values, [[0.0, 0.0]])

    def test_apply(self, random_data):
        """Test applying a fitted standardization to new rows."""
        result = standardize(random_data)

        assert np.allclose(result.apply(random_data), result.values)

        new_row = random_data[:1] + 1.0
        expected = (new_row - result.center) / result.scale
        assert np.allclose(result.apply(new_row), expected)

        with pytest.raises(InvalidInputError):
            result.apply(np.zeros((1, 3)))


class TestHelpers:
    """Tests for the column helpers."""

    def test_column_sd(self):
        """Test the sample standard deviation."""
        data = np.array([[1.0], [2.0], [3.0], [4.0]])
        assert np.isclose(column_sd(data)[0], np.sqrt(5.0 / 3.0))

    def test_constant_columns(self):
        """Test detection of constant columns."""
        data = np.array([[1.0, 2.0, 3.0], [1.0, 5.0, 3.0]])
        assert constant_columns(data).tolist() == [0, 2]
