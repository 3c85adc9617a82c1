# reorder_suggestions/utils/math_utils.py
import math
from typing import List, Sequence

import numpy as np
from scipy import stats


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp a value to the inclusive range [minimum, maximum]."""
    return max(minimum, min(maximum, value))

def population_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0) of a series.

    Args:
        values: Series of observations

    Returns:
        Standard deviation or 0.0 for an empty series
    """
    if len(values) == 0:
        return 0.0

    return float(np.std(np.asarray(values, dtype=float)))

def percentage_distribution(values: Sequence[float]) -> List[float]:
    """Convert a series into percentages of its total.

    Args:
        values: Series of non-negative values

    Returns:
        List of percentages (all zeros when the total is zero)
    """
    total = float(sum(values))
    if total <= 0:
        return [0.0 for _ in values]

    return [float(v) / total * 100.0 for v in values]

def pearson_correlation(first: Sequence[float], second: Sequence[float]) -> float:
    """Pearson correlation between two equally long series.

    A constant series has no defined correlation and scores 0.0.
    """
    if len(first) != len(second) or len(first) < 2:
        return 0.0

    if np.ptp(np.asarray(first, dtype=float)) == 0 or np.ptp(np.asarray(second, dtype=float)) == 0:
        return 0.0

    correlation, _ = stats.pearsonr(first, second)
    if math.isnan(correlation):
        return 0.0

    return float(correlation)
