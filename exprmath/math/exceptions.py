"""
Errors raised by the exprmath numerical routines.

All of them are input-validation failures raised at the entry of the
offending call; none of them is transient.
"""

from typing import List, Optional, Sequence


class ExprMathError(Exception):
    """Base class for exprmath errors."""


class InvalidInputError(ExprMathError, ValueError):
    """
    Malformed input: wrong shape, too few samples, non-finite values,
    or a cluster count outside its valid range.
    """


class DegenerateFeatureError(ExprMathError, ValueError):
    """
    A feature has zero variance, so it cannot be scaled to unit
    standard deviation.
    """

    def __init__(self, features: Sequence[int], names: Optional[Sequence] = None):
        self.features: List[int] = list(features)
        self.names = None if names is None else list(names)
        shown = self.names if self.names is not None else self.features
        if len(shown) > 10:
            shown = list(shown[:10]) + ['...']
        super().__init__(
            f"{len(self.features)} constant feature(s) cannot be scaled: {shown}"
        )
