"""
General utility functions for the exprmath package.
"""

import numpy as np
import pandas as pd
from typing import Any, Iterable, List, TypeVar

T = TypeVar('T')


def distinct(coll: Iterable[T]) -> List[T]:
    """
    Return a list with duplicates removed, preserving order.

    Args:
        coll: Collection to process

    Returns:
        List with duplicates removed
    """
    seen = set()
    result = []
    for item in coll:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def first_appearance_ids(groups: Iterable[Any]) -> np.ndarray:
    """
    Renumber group keys as 1..k in order of first appearance.

    Args:
        groups: Group key per sample

    Returns:
        Integer array of ids starting at 1
    """
    groups = list(groups)
    ids = {key: i + 1 for i, key in enumerate(distinct(groups))}
    return np.array([ids[key] for key in groups], dtype=int)


def to_builtin(value: Any) -> Any:
    """
    Convert numpy and pandas values into plain Python types so they can be
    dumped as JSON or YAML.

    Args:
        value: Value to convert (nested dicts and lists are walked)

    Returns:
        Converted value
    """
    if isinstance(value, dict):
        return {str(k): to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_builtin(v) for v in value]
    if isinstance(value, pd.DataFrame):
        return {str(k): to_builtin(v) for k, v in value.to_dict(orient='index').items()}
    if isinstance(value, pd.Series):
        return {str(k): to_builtin(v) for k, v in value.to_dict().items()}
    if isinstance(value, np.ndarray):
        return to_builtin(value.tolist())
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value
