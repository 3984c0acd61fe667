"""
Linear support vector classification of labelled expression matrices.

With many more genes than samples the classes are usually linearly
separable, so only the linear kernel is offered. The fit uses
scikit-learn's SVC, which handles more than two classes one-vs-one.

Features are standardized with the training statistics before fitting,
so the classifier does not depend on the units each gene is measured in.
Constant features have no spread to divide by and are only centered.
"""

import logging
import numpy as np
import pandas as pd
from typing import Optional, Sequence

from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC

from exprmath.math.exceptions import InvalidInputError
from exprmath.math.sample_matrix import ArrayLike, SampleMatrix, as_matrix

logger = logging.getLogger(__name__)


class Evaluation:
    """
    Predictions of a classifier on one data set.

    Attributes:
        predicted: Predicted class per sample
        truth: Actual class per sample
        confusion: Prediction x truth contingency table
        accuracy: Fraction of correct predictions
    """

    def __init__(self, predicted: np.ndarray, truth: np.ndarray):
        self.predicted = predicted
        self.truth = truth
        self.confusion = pd.crosstab(
            pd.Series(predicted, name='pred'),
            pd.Series(truth, name='truth')
        )
        self.accuracy = float(np.mean(predicted == truth))

    @property
    def n_errors(self) -> int:
        return int(np.sum(self.predicted != self.truth))

    def class_counts(self) -> pd.Series:
        """Number of samples of each actual class, sorted by class."""
        return pd.Series(self.truth).value_counts().sort_index()

    def __repr__(self) -> str:
        return f"Evaluation(samples={len(self.truth)}, accuracy={self.accuracy:.4f})"


class SVMResult:
    """Fitted linear SVM together with its training and test evaluations."""

    def __init__(self, model: Pipeline, training: Evaluation, test: Optional[Evaluation] = None):
        self.model = model
        self.training = training
        self.test = test

    @property
    def svm(self) -> SVC:
        """The fitted SVC step of the pipeline."""
        return self.model.named_steps['svm']

    @property
    def classes(self) -> list:
        return self.svm.classes_.tolist()

    @property
    def n_support(self) -> list:
        """Number of support vectors per class."""
        return self.svm.n_support_.tolist()

    def __repr__(self) -> str:
        test = f", test={self.test.accuracy:.4f}" if self.test is not None else ""
        return f"SVMResult(classes={self.classes}, training={self.training.accuracy:.4f}{test})"


def _resolve_labels(data: ArrayLike, labels: Optional[Sequence]) -> np.ndarray:
    if labels is None:
        if isinstance(data, SampleMatrix) and data.labels is not None:
            labels = data.labels
        else:
            raise InvalidInputError("Class labels are required")
    return np.array([str(label) for label in labels])


def fit_linear_svm(data: ArrayLike,
                   labels: Optional[Sequence] = None,
                   cost: float = 10.0,
                   scale: bool = True) -> Pipeline:
    """
    Fit a linear-kernel support vector classifier.

    Args:
        data: Training samples-by-features matrix
        labels: Class per training sample (defaults to the matrix labels)
        cost: Penalty on margin violations (C)
        scale: Standardize features with the training statistics first

    Returns:
        Fitted pipeline of a StandardScaler and an SVC
    """
    values = as_matrix(data, min_samples=2)
    y = _resolve_labels(data, labels)
    if len(y) != values.shape[0]:
        raise InvalidInputError(f"Got {len(y)} labels for {values.shape[0]} samples")
    if len(np.unique(y)) < 2:
        raise InvalidInputError("At least two classes are required")
    if cost <= 0:
        raise InvalidInputError(f"Cost must be positive, got {cost}")

    # StandardScaler leaves zero-variance columns unscaled
    model = Pipeline([
        ('scale', StandardScaler(with_mean=scale, with_std=scale)),
        ('svm', SVC(kernel='linear', C=cost))
    ])
    model.fit(values, y)

    logger.info(f"Fitted linear SVM on {values.shape[0]} samples, "
                f"{int(np.sum(model.named_steps['svm'].n_support_))} support vectors")
    return model


def evaluate(model: Pipeline, data: ArrayLike, labels: Optional[Sequence] = None) -> Evaluation:
    """
    Predict classes and tabulate them against the truth.

    Args:
        model: Fitted classifier
        data: Samples-by-features matrix
        labels: Actual class per sample (defaults to the matrix labels)

    Returns:
        Evaluation
    """
    values = as_matrix(data)
    y = _resolve_labels(data, labels)
    if len(y) != values.shape[0]:
        raise InvalidInputError(f"Got {len(y)} labels for {values.shape[0]} samples")
    return Evaluation(model.predict(values), y)


def classify(train: ArrayLike,
             test: Optional[ArrayLike] = None,
             train_labels: Optional[Sequence] = None,
             test_labels: Optional[Sequence] = None,
             cost: float = 10.0,
             scale: bool = True) -> SVMResult:
    """
    Fit a linear SVM on the training set and evaluate it on both sets.

    Args:
        train: Training matrix
        test: Optional held-out matrix with the same features
        train_labels: Training classes (defaults to the matrix labels)
        test_labels: Test classes (defaults to the matrix labels)
        cost: Penalty on margin violations (C)
        scale: Standardize features with the training statistics first

    Returns:
        SVMResult
    """
    model = fit_linear_svm(train, train_labels, cost, scale)
    training = evaluate(model, train, train_labels)

    test_eval = None
    if test is not None:
        test_eval = evaluate(model, test, test_labels)
        logger.info(f"Linear SVM accuracy: training {training.accuracy:.4f}, "
                    f"test {test_eval.accuracy:.4f}")

    return SVMResult(model, training, test_eval)
