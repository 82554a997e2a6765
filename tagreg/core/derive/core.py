# -*- coding: utf-8 -*-
"""derive/core.py - Master transform computation entry point."""


import logging
from typing import Callable, Dict

import numpy as np

from ..base import TransformFamily
from ..config import DEFAULT_SETTINGS, SolverSettings
from ..metrics import compute_residuals
from ..state import PointSet
from ..transform import TransformResult, apply_linear, apply_tps
from .affine import solve_affine
from .refine import refine_transform
from .tps import solve_tps

logger = logging.getLogger(__name__)


# --- STRATEGY WRAPPERS ---
# Each returns a fitted result without error metrics; compute_transform
# attaches them.

def _fit_refined(A: PointSet, B: PointSet, family: TransformFamily, settings: SolverSettings) -> dict:
    return {'linear_matrix': refine_transform(A.points, B.points, family, settings)}


def _fit_affine(A: PointSet, B: PointSet, family: TransformFamily, settings: SolverSettings) -> dict:
    return {'linear_matrix': solve_affine(A.points, B.points)}


def _fit_tps(A: PointSet, B: PointSet, family: TransformFamily, settings: SolverSettings) -> dict:
    fit = solve_tps(A.points, B.points)
    return {
        'linear_matrix': fit.affine_matrix,
        'tps_source_points': fit.source_points,
        'tps_weights': fit.weights,
    }


# --- SOLVER REGISTRY ---
SOLVER_REGISTRY: Dict[TransformFamily, Callable] = {
    TransformFamily.RIGID: _fit_refined,
    TransformFamily.SIMILARITY: _fit_refined,
    TransformFamily.NINE_PARAM: _fit_refined,
    TransformFamily.TEN_PARAM: _fit_refined,
    TransformFamily.FULL_AFFINE: _fit_affine,
    TransformFamily.THIN_PLATE_SPLINE: _fit_tps,
}


def compute_transform(
    target,
    source,
    family: TransformFamily,
    settings: SolverSettings = None
) -> TransformResult:
    """
    Compute the transform mapping source tags onto target tags.

    Stateless: every call builds a fresh, immutable result.

    Args:
        target: Tag positions in the target / reference space A, (N, 3).
        source: Tag positions in the source / moving space B, (N, 3),
            paired with target by index.
        family: Requested transform family.
        settings: Solver tolerances; DEFAULT_SETTINGS when None.

    Returns:
        TransformResult with valid=False when the lists differ in length or
        hold fewer pairs than the family needs (4 linear, 5 TPS); otherwise
        a valid result with per-pair and RMS residuals filled in.
    """
    family = TransformFamily(family)
    settings = settings or DEFAULT_SETTINGS
    A = PointSet.coerce(target)
    B = PointSet.coerce(source)

    if A.n_points != B.n_points:
        logger.debug("Rejecting %s: %d target vs %d source tags", family.label, A.n_points, B.n_points)
        return TransformResult.invalid(family)

    if A.n_points < family.min_pairs:
        logger.debug(
            "Rejecting %s: %d tag pairs, need at least %d", family.label, A.n_points, family.min_pairs
        )
        return TransformResult.invalid(family)

    logger.debug("Computing %s from %d tag pairs", family.label, A.n_points)
    fitted = SOLVER_REGISTRY[family](A, B, family, settings)

    if 'tps_weights' in fitted:
        def evaluate(pts: np.ndarray) -> np.ndarray:
            return apply_tps(fitted['tps_source_points'], fitted['tps_weights'], pts)
    else:
        def evaluate(pts: np.ndarray) -> np.ndarray:
            return apply_linear(fitted['linear_matrix'], pts)

    per_pair, average = compute_residuals(evaluate, A.points, B.points)
    logger.debug("%s RMS residual %.6g", family.label, average)

    return TransformResult(
        valid=True,
        family=family,
        per_pair_residual=per_pair,
        average_residual=average,
        settings=settings,
        **fitted
    )
