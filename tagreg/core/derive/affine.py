# -*- coding: utf-8 -*-
"""derive/affine.py - Direct 12-parameter affine fit and its decomposition."""


import numpy as np
from typing import NamedTuple
from scipy.linalg import lstsq, svd

from ..state import PointSet
from ..rotation import rotation_to_euler


class AffineDecomposition(NamedTuple):
    """Affine 4x4 split into the Shear @ R @ Scale parameter model."""
    translation: np.ndarray  # (3,)
    angles: np.ndarray       # (3,) Euler rx, ry, rz
    scales: np.ndarray       # (3,)
    shear: float             # X/Y shear estimate


def solve_affine(target, source) -> np.ndarray:
    """
    Full affine via per-axis linear least squares.

    For each output axis d, solve the overdetermined system
        [1, Bx, By, Bz] @ [a0, a1, a2, a3]^T = A_d
    with QR + column pivoting (LAPACK gelsy). An exact affine relation
    between the sets is reproduced to machine precision.

    Returns:
        4x4 homogeneous matrix mapping source -> target
    """
    A = PointSet.coerce(target)
    B = PointSet.coerce(source)
    if A.n_points != B.n_points:
        raise ValueError(f"point count mismatch: {A.n_points} target vs {B.n_points} source")

    design = np.column_stack([np.ones(B.n_points), B.points])  # (N, 4)

    mat = np.eye(4)
    for dim in range(3):
        solution, _, _, _ = lstsq(design, A.points[:, dim], lapack_driver='gelsy')
        # solution = [a0, a1, a2, a3]
        mat[dim, 3] = solution[0]
        mat[dim, :3] = solution[1:]
    return mat


def decompose_affine(matrix: np.ndarray) -> AffineDecomposition:
    """
    Initial guess for the 9/10-parameter families from an affine matrix.

    With M = U Σ V^T, R = U V^T is the closest rotation (last column of V
    flipped if det < 0). For M = R @ S the product R^T @ M is diagonal and
    its diagonal holds the scales; what remains off the diagonal is shear,
    of which only the (0, 1) entry is kept. A negative scale is made
    positive by flipping the matching rotation column, unless that would
    leave R improper (mirrored input), in which case one scale stays negative.
    """
    M = np.asarray(matrix, dtype=float)[:3, :3]
    translation = np.asarray(matrix, dtype=float)[:3, 3].copy()

    U, _, Vt = svd(M)
    V = Vt.T
    R = U @ V.T
    if np.linalg.det(R) < 0:
        V[:, -1] *= -1
        R = U @ V.T

    S_mat = R.T @ M
    scales = np.diag(S_mat).copy()
    shear = float(S_mat[0, 1])

    negative = scales < 0
    scales[negative] *= -1
    R[:, negative] *= -1

    # A mirrored M cannot be R @ S with S > 0; keep R proper and let the
    # smallest scale carry the reflection
    if np.linalg.det(R) < 0:
        k = int(np.argmin(scales))
        scales[k] *= -1
        R[:, k] *= -1

    return AffineDecomposition(
        translation=translation,
        angles=rotation_to_euler(R),
        scales=scales,
        shear=shear,
    )
