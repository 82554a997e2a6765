# -*- coding: utf-8 -*-
"""
transform.py - TransformResult and point evaluation.

A TransformResult maps points from source space B to target space A.
Forward evaluation is exact for every family; inverse evaluation is exact
for linear families and a best-effort Newton-Raphson solve for the
thin-plate spline.
"""

import logging
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import numpy as np
from scipy.spatial.distance import cdist

from .base import TransformFamily, NotInvertibleError
from .config import DEFAULT_SETTINGS, SolverSettings

logger = logging.getLogger(__name__)


def tps_kernel(r: np.ndarray) -> np.ndarray:
    """3-D thin-plate kernel U(r) = r (no logarithm, unlike the 2-D case)."""
    return r


def apply_linear(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 homogeneous matrix to (N, 3) row points."""
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def apply_tps(source_points: np.ndarray, weights: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Evaluate a thin-plate spline at (N, 3) points.

    f(p) = Σ_i w_i U(|p - c_i|) + w_n + w_{n+1} p.x + w_{n+2} p.y + w_{n+3} p.z
    """
    n = source_points.shape[0]
    K = tps_kernel(cdist(points, source_points))
    affine = np.column_stack([np.ones(points.shape[0]), points])
    return K @ weights[:n] + affine @ weights[n:n + 4]


class NewtonInversion(NamedTuple):
    """Outcome of a TPS inversion: last iterate and whether it met tolerance."""
    point: np.ndarray
    converged: bool
    iterations: int


@dataclass(frozen=True, eq=False)
class TransformResult:
    """
    Output of a single transform computation.

    When valid is False only `family` is meaningful.

    WARNING: the dataclass is frozen but numpy array contents can still be
    modified in place. Treat arrays as read-only.

    Attributes:
        valid: False for rejected requests (mismatched or too few pairs).
        family: The family that was requested.
        linear_matrix: 4x4 matrix mapping source -> target. For TPS this is
            only the affine part of the spline.
        per_pair_residual: |f(B_i) - A_i| per pair, shape (n,).
        average_residual: RMS of per_pair_residual.
        tps_source_points: TPS kernel centres (source space), shape (n, 3).
        tps_weights: TPS weights, shape (n + 4, 3). Rows 0..n-1 are kernel
            weights, row n the constant term, rows n+1..n+3 the x/y/z
            coefficients; columns are output axes.
        settings: Tolerances the result was computed with; the Newton
            inversion reads its iteration cap, tolerance and step from here.
    """
    valid: bool
    family: TransformFamily
    linear_matrix: np.ndarray = field(default_factory=lambda: np.eye(4))
    per_pair_residual: np.ndarray = field(default_factory=lambda: np.zeros(0))
    average_residual: float = 0.0
    tps_source_points: Optional[np.ndarray] = None
    tps_weights: Optional[np.ndarray] = None
    settings: SolverSettings = DEFAULT_SETTINGS

    def __post_init__(self) -> None:
        # Frozen: normalise array fields through object.__setattr__
        for name in ("linear_matrix", "per_pair_residual", "tps_source_points", "tps_weights"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, np.asarray(value, dtype=float))

        if self.linear_matrix.shape != (4, 4):
            raise ValueError(f"linear_matrix must be 4x4, got {self.linear_matrix.shape}")
        if self.valid and self.family is TransformFamily.THIN_PLATE_SPLINE:
            if self.tps_source_points is None or self.tps_weights is None:
                raise ValueError("a valid TPS result needs source points and weights")
            n = self.tps_source_points.shape[0]
            if self.tps_weights.shape != (n + 4, 3):
                raise ValueError(
                    f"tps_weights must have shape ({n + 4}, 3), got {self.tps_weights.shape}"
                )

    @classmethod
    def invalid(cls, family: TransformFamily) -> 'TransformResult':
        return cls(valid=False, family=family)

    @property
    def n_pairs(self) -> int:
        return self.per_pair_residual.shape[0]

    @property
    def is_linear(self) -> bool:
        return self.family is not TransformFamily.THIN_PLATE_SPLINE or self.tps_weights is None

    # === Forward ===

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map (N, 3) source-space points to target space."""
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        if not self.valid:
            return pts.copy()
        if self.is_linear:
            return apply_linear(self.linear_matrix, pts)
        return apply_tps(self.tps_source_points, self.tps_weights, pts)

    def transform_point(self, point) -> np.ndarray:
        """Map one source-space point to target space."""
        return self.transform_points(np.asarray(point, dtype=float).reshape(1, 3))[0]

    # === Inverse ===

    def inverse_matrix(self) -> np.ndarray:
        """Inverse of linear_matrix; raises NotInvertibleError if singular."""
        try:
            return np.linalg.inv(self.linear_matrix)
        except np.linalg.LinAlgError as exc:
            raise NotInvertibleError(
                f"{self.family.label} matrix is singular "
                f"(det={np.linalg.det(self.linear_matrix[:3, :3]):.6g})"
            ) from exc

    def invert_point(
        self,
        point,
        max_iterations: int = None,
        tolerance: float = None,
    ) -> NewtonInversion:
        """
        Find q with transform_point(q) ≈ point, reporting convergence.

        Linear families are inverted in closed form and always report
        converged. For TPS, Newton-Raphson starts from the inverse of the
        spline's affine part and stops once |f(q) - point| < tolerance or
        after max_iterations steps; both default to the result's settings.
        There is no convergence guarantee: a strongly folding deformation can
        make the iteration wander or stall, in which case the last iterate is
        returned with converged=False.
        """
        p = np.asarray(point, dtype=float).reshape(3)
        if not self.valid:
            return NewtonInversion(p.copy(), True, 0)
        if self.is_linear:
            return NewtonInversion(apply_linear(self.inverse_matrix(), p[None, :])[0], True, 0)

        if max_iterations is None:
            max_iterations = self.settings.newton_max_iterations
        if tolerance is None:
            tolerance = self.settings.newton_tolerance
        return self._newton_invert(p, max_iterations, tolerance, self.settings.newton_step)

    def inverse_transform_point(self, point, max_iterations: int = None, tolerance: float = None) -> np.ndarray:
        """
        Map one target-space point back to source space.

        Best effort for TPS: a non-converged inversion is not reported,
        the last Newton iterate is returned as-is. Use invert_point to see
        whether the tolerance was met.
        """
        return self.invert_point(point, max_iterations, tolerance).point

    def inverse_transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map (N, 3) target-space points back to source space."""
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        if not self.valid:
            return pts.copy()
        if self.is_linear:
            return apply_linear(self.inverse_matrix(), pts)
        return np.array([self.inverse_transform_point(p) for p in pts]).reshape(-1, 3)

    def _newton_invert(self, p: np.ndarray, max_iterations: int, tolerance: float, step: float) -> NewtonInversion:
        n = self.tps_source_points.shape[0]
        A = self.tps_weights[n + 1:n + 4].T  # columns are x/y/z coefficients
        b = self.tps_weights[n]

        try:
            q = np.linalg.solve(A, p - b)
        except np.linalg.LinAlgError:
            q = np.linalg.pinv(A) @ (p - b)

        tol2 = tolerance * tolerance
        offsets = np.eye(3) * step

        for iteration in range(max_iterations):
            residual = self.transform_point(q) - p
            if residual @ residual < tol2:
                return NewtonInversion(q, True, iteration)

            # Central differences, one column per input axis
            f_plus = self.transform_points(q + offsets)
            f_minus = self.transform_points(q - offsets)
            J = ((f_plus - f_minus) / (2.0 * step)).T

            try:
                q = q - np.linalg.solve(J, residual)
            except np.linalg.LinAlgError:
                logger.warning("TPS inversion hit a singular Jacobian at %s", q)
                return NewtonInversion(q, False, iteration)

        residual = self.transform_point(q) - p
        converged = bool(residual @ residual < tol2)
        if not converged:
            logger.debug(
                "TPS inversion did not converge in %d iterations (|r|=%.3g)",
                max_iterations, np.sqrt(residual @ residual)
            )
        return NewtonInversion(q, converged, max_iterations)

    def __repr__(self):
        if not self.valid:
            return f"TransformResult({self.family.label}, invalid)"
        return (
            f"TransformResult({self.family.label}, n={self.n_pairs}, "
            f"rms={self.average_residual:.6g})"
        )
