# -*- coding: utf-8 -*-
"""
derive/tps.py - Thin-plate spline through every tag pair.

Kernel centres are the source points B, so the spline maps source -> target:

    | K   P | | w |   | A |
    | P^T 0 | | a | = | 0 |

K[i, j] = U(|B_i - B_j|) with U(r) = r, P[i] = [1, Bx_i, By_i, Bz_i].
"""

import logging
from typing import NamedTuple

import numpy as np
from scipy.linalg import lstsq, solve
from scipy.spatial.distance import cdist

from ..state import PointSet
from ..transform import tps_kernel

logger = logging.getLogger(__name__)


class TpsFit(NamedTuple):
    source_points: np.ndarray  # (n, 3) kernel centres
    weights: np.ndarray        # (n + 4, 3)
    affine_matrix: np.ndarray  # 4x4 affine part of the spline


def build_tps_system(source: np.ndarray) -> np.ndarray:
    """(n+4) x (n+4) kernel/polynomial matrix L for centres `source`."""
    n = source.shape[0]
    size = n + 4
    L = np.zeros((size, size))

    K = tps_kernel(cdist(source, source))
    np.fill_diagonal(K, 0.0)
    P = np.column_stack([np.ones(n), source])

    L[:n, :n] = K
    L[:n, n:] = P
    L[n:, :n] = P.T
    return L


def solve_tps(target, source) -> TpsFit:
    """
    Solve for the spline weights.

    A singular system (duplicate centres, coplanar sets) falls back to
    the minimum-norm least-squares solution instead of failing; exact
    interpolation then holds only as far as the data allows.
    """
    A = PointSet.coerce(target)
    B = PointSet.coerce(source)
    if A.n_points != B.n_points:
        raise ValueError(f"point count mismatch: {A.n_points} target vs {B.n_points} source")

    n = B.n_points
    L = build_tps_system(B.points)
    Y = np.zeros((n + 4, 3))
    Y[:n] = A.points

    rank = np.linalg.matrix_rank(L)
    if rank < n + 4:
        logger.warning(
            "TPS system is rank deficient (rank %d of %d), using least-squares solve", rank, n + 4
        )
        W, _, _, _ = lstsq(L, Y)
    else:
        W = solve(L, Y)

    affine = np.eye(4)
    affine[:3, 3] = W[n]
    affine[:3, :3] = W[n + 1:n + 4].T

    return TpsFit(source_points=B.points.copy(), weights=W, affine_matrix=affine)
