"""
Procrustes Prior - Closed-form rigid / similarity fit

Derives A ≈ scale * R @ B + t using SVD of the cross-covariance.
Exact least-squares optimum for the Rigid and Similarity families.
"""

import logging

import numpy as np
from scipy.linalg import svd

from ..state import PointSet
from ..config import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


def solve_procrustes(
    target,
    source,
    allow_scale: bool = False,
    denominator_floor: float = None
) -> np.ndarray:
    """
    Derive orthogonal Procrustes transformation: A = scale * R @ B + t

    Algorithm:
    1. Center both point sets
    2. SVD of the cross-covariance M = Bc^T @ Ac = U W V^T
    3. R = V @ U^T, flipping the weakest singular direction if det(R) < 0
    4. Optional uniform scale  Σ (R Bc_i)·Ac_i / Σ Bc_i·Bc_i
    5. t = centroid(A) - scale * R @ centroid(B)

    Collinear or coplanar sets still produce a matrix (rank deficiency is
    absorbed by the SVD); only the conditioning suffers.

    Args:
        target: Target points A (N x 3)
        source: Source points B (N x 3), paired with target by index
        allow_scale: If True, estimate a uniform scale factor
        denominator_floor: Scale is left at 1.0 when Σ|Bc_i|² is below this

    Returns:
        4x4 homogeneous matrix mapping source -> target
    """
    if denominator_floor is None:
        denominator_floor = DEFAULT_SETTINGS.scale_denominator_floor

    A = PointSet.coerce(target)
    B = PointSet.coerce(source)
    if A.n_points != B.n_points:
        raise ValueError(f"point count mismatch: {A.n_points} target vs {B.n_points} source")

    mu_A = A.centroid
    mu_B = B.centroid
    A_c = A.centered()
    B_c = B.centered()

    # Cross-covariance matrix
    M = B_c.T @ A_c  # 3x3

    U, W, Vt = svd(M)
    V = Vt.T

    # Optimal rotation: R = V @ U.T
    R = V @ U.T

    # Ensure proper rotation (det = +1); svd sorts W descending
    if np.linalg.det(R) < 0:
        V[:, -1] *= -1
        R = V @ U.T

    scale = 1.0
    if allow_scale:
        # Rows: (R @ b_i)^T = b_i^T @ R^T
        B_rot = B_c @ R.T
        num = np.sum(B_rot * A_c)
        den = np.sum(B_c * B_c)
        if den > denominator_floor:
            scale = num / den
        else:
            logger.debug("Procrustes scale denominator %.3g below floor, keeping scale 1", den)

    t = mu_A - scale * R @ mu_B

    mat = np.eye(4)
    mat[:3, :3] = scale * R
    mat[:3, 3] = t
    return mat
