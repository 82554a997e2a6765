# -*- coding: utf-8 -*-
"""
metrics.py - Alignment error for tag pairs.

Residuals are measured in target space: the source point is pushed
through the fitted transform and compared with its paired target point.
"""

from typing import Callable, Tuple

import numpy as np


def rms(values: np.ndarray) -> float:
    """Root-mean-square of a 1-D array; 0.0 for an empty array."""
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(values ** 2)))


def compute_residuals(
    evaluate: Callable[[np.ndarray], np.ndarray],
    target: np.ndarray,
    source: np.ndarray,
) -> Tuple[np.ndarray, float]:
    """
    Per-pair Euclidean error and its RMS.

    Args:
        evaluate: Forward map, (N, 3) source points -> (N, 3) target points.
        target: Target-space points A, shape (N, 3).
        source: Source-space points B, shape (N, 3).

    Returns:
        (per_pair, average) where per_pair[i] = |evaluate(B)_i - A_i|
        and average = sqrt(mean(per_pair ** 2)).

    Raises:
        ValueError: If target and source shapes differ.
    """
    if target.shape != source.shape:
        raise ValueError(
            f"target shape {target.shape} does not match source shape {source.shape}"
        )
    per_pair = np.linalg.norm(evaluate(source) - target, axis=1)
    return per_pair, rms(per_pair)
