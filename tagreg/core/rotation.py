# -*- coding: utf-8 -*-
"""
rotation.py - Euler angles and the Shear * R * Scale linear model.

Angle convention: R = Rz @ Ry @ Rx, angles in radians.
"""

import numpy as np
from scipy.linalg import svd

from .config import DEFAULT_SETTINGS


def euler_to_rotation(rx: float, ry: float, rz: float) -> np.ndarray:
    """3x3 rotation Rz(rz) @ Ry(ry) @ Rx(rx)."""
    cx, sx = np.cos(rx), np.sin(rx)
    cy, sy = np.cos(ry), np.sin(ry)
    cz, sz = np.cos(rz), np.sin(rz)

    Rx = np.array([[1.0, 0.0, 0.0],
                   [0.0, cx, -sx],
                   [0.0, sx, cx]])
    Ry = np.array([[cy, 0.0, sy],
                   [0.0, 1.0, 0.0],
                   [-sy, 0.0, cy]])
    Rz = np.array([[cz, -sz, 0.0],
                   [sz, cz, 0.0],
                   [0.0, 0.0, 1.0]])
    return Rz @ Ry @ Rx


def rotation_to_euler(R: np.ndarray, gimbal_epsilon: float = None) -> np.ndarray:
    """
    Inverse of euler_to_rotation for a proper rotation.

    For R = Rz Ry Rx:
        R[2,0] = -sin(ry)
        R[2,1] =  cos(ry) sin(rx),  R[2,2] = cos(ry) cos(rx)
        R[1,0] =  cos(ry) sin(rz),  R[0,0] = cos(ry) cos(rz)

    At gimbal lock (cos(ry) ~ 0) only rx ± rz is observable; rz is pinned
    to 0 and rx absorbs the whole in-plane angle.

    Returns:
        array [rx, ry, rz]
    """
    if gimbal_epsilon is None:
        gimbal_epsilon = DEFAULT_SETTINGS.gimbal_lock_epsilon

    sy = -np.clip(R[2, 0], -1.0, 1.0)
    ry = np.arcsin(sy)
    cy = np.cos(ry)

    if abs(cy) > gimbal_epsilon:
        rx = np.arctan2(R[2, 1], R[2, 2])
        rz = np.arctan2(R[1, 0], R[0, 0])
    else:
        # R[0,1] = sy*sx, R[1,1] = cx when rz = 0
        rx = np.arctan2(np.sign(sy) * R[0, 1], R[1, 1])
        rz = 0.0

    return np.array([rx, ry, rz])


def nearest_rotation(M: np.ndarray) -> np.ndarray:
    """Closest proper rotation to M (Frobenius norm), via SVD."""
    U, _, Vt = svd(M)
    R = U @ Vt
    if np.linalg.det(R) < 0:
        Vt[-1, :] *= -1
        R = U @ Vt
    return R


def build_linear_block(angles: np.ndarray, scales: np.ndarray, shear: float = 0.0) -> np.ndarray:
    """
    3x3 linear part Shear @ R @ Scale.

    Scale is applied first, then rotation, then an X/Y shear
    (Shear[0,1] = shear). R @ S differs from S @ R for non-uniform scales.
    """
    R = euler_to_rotation(*angles)
    S = np.diag(np.asarray(scales, dtype=float))
    SH = np.eye(3)
    SH[0, 1] = shear
    return SH @ R @ S


def build_affine_matrix(
    translation: np.ndarray,
    angles: np.ndarray,
    scales: np.ndarray = (1.0, 1.0, 1.0),
    shear: float = 0.0
) -> np.ndarray:
    """4x4 homogeneous matrix [Shear @ R @ Scale | t; 0 0 0 1]."""
    mat = np.eye(4)
    mat[:3, :3] = build_linear_block(angles, scales, shear)
    mat[:3, 3] = translation
    return mat
