# -*- coding: utf-8 -*-
"""
derive/refine.py - Levenberg-Marquardt refinement for the 6/7/9/10 families.

Parameter vector layout (by family):
    RIGID       [tx, ty, tz, rx, ry, rz]
    SIMILARITY  [tx, ty, tz, rx, ry, rz, s]
    NINE_PARAM  [tx, ty, tz, rx, ry, rz, sx, sy, sz]
    TEN_PARAM   [tx, ty, tz, rx, ry, rz, sx, sy, sz, shear]

Linear part is Shear @ Rz Ry Rx @ Scale (see rotation.build_linear_block).
"""

import logging
from typing import Tuple

import numpy as np
from scipy.optimize import least_squares

from ..base import TransformFamily
from ..config import DEFAULT_SETTINGS, SolverSettings
from ..rotation import build_affine_matrix, nearest_rotation, rotation_to_euler
from ..state import PointSet
from .affine import solve_affine, decompose_affine
from .procrustes import solve_procrustes

logger = logging.getLogger(__name__)

REFINED_FAMILIES = (
    TransformFamily.RIGID,
    TransformFamily.SIMILARITY,
    TransformFamily.NINE_PARAM,
    TransformFamily.TEN_PARAM,
)


class ResidualModel:
    """
    Parameter vector -> stacked per-point displacement residuals.

    residual[3*i + d] = (M(params) @ B_i)_d - A_i_d

    Only inputs/values/__call__ are needed by the optimizer; the family
    switch lives in pack/unpack.
    """

    def __init__(self, family: TransformFamily, target, source):
        if family not in REFINED_FAMILIES:
            raise ValueError(f"{family.label} has no parametric residual model")
        A = PointSet.coerce(target)
        B = PointSet.coerce(source)
        if A.n_points != B.n_points:
            raise ValueError(f"point count mismatch: {A.n_points} target vs {B.n_points} source")
        self.family = family
        self.target = A.points
        self.source = B.points

    @property
    def inputs(self) -> int:
        return self.family.n_parameters

    @property
    def values(self) -> int:
        return 3 * self.target.shape[0]

    def unpack(self, params: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, float]:
        """Split params into (translation, angles, scales, shear)."""
        params = np.asarray(params, dtype=float)
        translation = params[0:3]
        angles = params[3:6]
        shear = 0.0
        if self.family is TransformFamily.RIGID:
            scales = np.ones(3)
        elif self.family is TransformFamily.SIMILARITY:
            scales = np.full(3, params[6])
        elif self.family is TransformFamily.NINE_PARAM:
            scales = params[6:9]
        else:
            scales = params[6:9]
            shear = params[9]
        return translation, angles, scales, shear

    def pack(self, translation, angles, scales=(1.0, 1.0, 1.0), shear: float = 0.0) -> np.ndarray:
        """Inverse of unpack. SIMILARITY keeps scales[0] only."""
        head = [np.asarray(translation, dtype=float), np.asarray(angles, dtype=float)]
        if self.family is TransformFamily.RIGID:
            tail = []
        elif self.family is TransformFamily.SIMILARITY:
            tail = [np.array([scales[0]], dtype=float)]
        elif self.family is TransformFamily.NINE_PARAM:
            tail = [np.asarray(scales, dtype=float)]
        else:
            tail = [np.asarray(scales, dtype=float), np.array([shear], dtype=float)]
        return np.concatenate(head + tail)

    def matrix(self, params: np.ndarray) -> np.ndarray:
        """4x4 source -> target matrix for a parameter vector."""
        return build_affine_matrix(*self.unpack(params))

    def __call__(self, params: np.ndarray) -> np.ndarray:
        M = self.matrix(params)
        mapped = self.source @ M[:3, :3].T + M[:3, 3]
        return (mapped - self.target).ravel()


def initial_parameters(model: ResidualModel, settings: SolverSettings = None) -> np.ndarray:
    """
    Starting point for refinement.

    RIGID/SIMILARITY start from the Procrustes optimum decomposed into
    angles (and a uniform scale recovered as the cube root of det).
    NINE_PARAM/TEN_PARAM start from the exact affine fit decomposed into
    rotation, per-axis scales and shear.
    """
    settings = settings or DEFAULT_SETTINGS
    family = model.family

    if family in (TransformFamily.RIGID, TransformFamily.SIMILARITY):
        with_scale = family is TransformFamily.SIMILARITY
        mat = solve_procrustes(
            model.target, model.source,
            allow_scale=with_scale,
            denominator_floor=settings.scale_denominator_floor,
        )
        translation = mat[:3, 3]
        R = mat[:3, :3]

        uniform = 1.0
        if with_scale:
            uniform = np.cbrt(abs(np.linalg.det(R)))
            if uniform < settings.scale_denominator_floor:
                uniform = 1.0
            R = R / uniform

        R = nearest_rotation(R)
        angles = rotation_to_euler(R, settings.gimbal_lock_epsilon)
        return model.pack(translation, angles, np.full(3, uniform))

    decomposition = decompose_affine(solve_affine(model.target, model.source))
    return model.pack(
        decomposition.translation,
        decomposition.angles,
        decomposition.scales,
        decomposition.shear if family is TransformFamily.TEN_PARAM else 0.0,
    )


def refine_transform(target, source, family: TransformFamily, settings: SolverSettings = None) -> np.ndarray:
    """
    Fit a 6/7/9/10-parameter transform by Levenberg-Marquardt.

    The optimizer always returns: hitting the evaluation cap is logged and
    the best iterate is used.

    Returns:
        4x4 homogeneous matrix mapping source -> target
    """
    settings = settings or DEFAULT_SETTINGS
    model = ResidualModel(family, target, source)
    x0 = initial_parameters(model, settings)

    fit = least_squares(
        model, x0,
        method='lm',
        xtol=settings.lm_xtol,
        ftol=settings.lm_ftol,
        gtol=settings.lm_gtol,
        max_nfev=settings.lm_max_evaluations,
    )

    if fit.status == 0:
        logger.debug("%s refinement hit %d evaluations without converging", family.label, fit.nfev)
    logger.debug(
        "%s refinement: status=%d nfev=%d cost=%.6g", family.label, fit.status, fit.nfev, fit.cost
    )
    return model.matrix(fit.x)
