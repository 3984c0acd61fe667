"""
Tests for loading and generating sample matrices.
"""

import pytest
import logging
import numpy as np
import pandas as pd
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from exprmath.data.loader import load_labels, load_sample_matrix, make_blobs_matrix
from exprmath.math.exceptions import InvalidInputError


@pytest.fixture
def matrix_csv(tmp_path):
    df = pd.DataFrame(
        {'g1': [1.0, 2.0, 3.0], 'g2': [0.5, 0.1, 0.9], 'cancer': ['BREAST', 'RENAL', 'BREAST']},
        index=pd.Index(['s1', 's2', 's3'], name='sample')
    )
    path = tmp_path / 'matrix.csv'
    df.to_csv(path)
    return str(path)


class TestLoadSampleMatrix:
    """Tests for reading matrices from disk."""

    def test_label_column(self, matrix_csv):
        """Test taking labels from a column of the file."""
        matrix = load_sample_matrix(matrix_csv, label_column='cancer')

        assert matrix.shape == (3, 2)
        assert matrix.sample_ids() == ['s1', 's2', 's3']
        assert matrix.feature_names() == ['g1', 'g2']
        assert matrix.labels == ('BREAST', 'RENAL', 'BREAST')

    def test_labels_file(self, tmp_path):
        """Test reading labels from a separate file."""
        data_path = tmp_path / 'matrix.tsv'
        pd.DataFrame([[1.0, 2.0], [3.0, 4.0]], index=['a', 'b'], columns=['x', 'y']).to_csv(data_path, sep='\t')

        labels_path = tmp_path / 'labels.csv'
        labels_path.write_text('label\nCNS\nMELANOMA\n')

        matrix = load_sample_matrix(str(data_path), labels_path=str(labels_path))

        assert matrix.values.tolist() == [[1.0, 2.0], [3.0, 4.0]]
        assert matrix.labels == ('CNS', 'MELANOMA')

    def test_non_numeric(self, matrix_csv):
        """Test that a text column left in the data is rejected."""
        with pytest.raises(InvalidInputError):
            load_sample_matrix(matrix_csv)

    def test_missing_files(self, tmp_path, matrix_csv):
        """Test that missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_sample_matrix(str(tmp_path / 'nothing.csv'))
        with pytest.raises(FileNotFoundError):
            load_labels(str(tmp_path / 'nothing.csv'))

    def test_both_label_sources(self, tmp_path, matrix_csv):
        """Test that only one source of labels is accepted."""
        with pytest.raises(InvalidInputError):
            load_sample_matrix(matrix_csv, label_column='cancer', labels_path=matrix_csv)


class TestIndexColumn:
    """Tests for files with and without a sample-id column."""

    @pytest.fixture
    def unindexed_csv(self, tmp_path):
        path = tmp_path / 'plain.csv'
        pd.DataFrame({'g1': [1.5, 2.5, 3.5], 'g2': [0.5, 0.1, 0.9]}).to_csv(path, index=False)
        return str(path)

    def test_no_index(self, unindexed_csv):
        """Test numbering the samples when the file has no id column."""
        matrix = load_sample_matrix(unindexed_csv, index_col=None)

        assert matrix.shape == (3, 2)
        assert matrix.feature_names() == ['g1', 'g2']
        assert matrix.sample_ids() == [0, 1, 2]

    def test_measurement_index_warns(self, unindexed_csv, caplog):
        """Test that a numeric first column used as ids is reported."""
        with caplog.at_level(logging.WARNING, logger='exprmath.data.loader'):
            matrix = load_sample_matrix(unindexed_csv)

        assert matrix.feature_names() == ['g2']
        assert 'no id column' in caplog.text


class TestLoadLabels:
    """Tests for reading label files."""

    def test_indexed_labels(self, tmp_path):
        """Test a labels file written with its index."""
        path = tmp_path / 'labels.csv'
        pd.Series(['A', 'B', 'A'], name='label').to_csv(path)
        assert load_labels(str(path)) == ['A', 'B', 'A']

    def test_too_many_columns(self, tmp_path):
        path = tmp_path / 'labels.csv'
        path.write_text('a,b,c\n1,2,3\n')
        with pytest.raises(InvalidInputError):
            load_labels(str(path))


class TestMakeBlobs:
    """Tests for the synthetic data generator."""

    def test_shape_and_labels(self):
        """Test dimensions, names and balanced groups."""
        matrix = make_blobs_matrix(n_samples=20, n_features=30, n_groups=4, seed=1)

        assert matrix.shape == (20, 30)
        assert matrix.sample_ids()[0] == 'S1'
        assert matrix.feature_names()[-1] == 'G30'
        assert matrix.label_counts().tolist() == [5, 5, 5, 5]
        assert matrix.label_counts().index.tolist() == ['group-1', 'group-2', 'group-3', 'group-4']

    def test_reproducible(self):
        """Test that the seed fixes the matrix."""
        a = make_blobs_matrix(n_samples=10, n_features=5, n_groups=2, seed=3)
        b = make_blobs_matrix(n_samples=10, n_features=5, n_groups=2, seed=3)

        assert np.array_equal(a.values, b.values)
        assert a.labels == b.labels

    def test_invalid_groups(self):
        with pytest.raises(InvalidInputError):
            make_blobs_matrix(n_samples=3, n_features=5, n_groups=4)
