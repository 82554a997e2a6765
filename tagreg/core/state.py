# -*- coding: utf-8 -*-
"""state.py - Ordered 3-D landmark lists (one side of a set of tag pairs)."""

import numpy as np
from dataclasses import dataclass


@dataclass
class PointSet:
    """
    Ordered points P ⊂ ℝ³ in world coordinates.

    Order is significant: point i of the target set is paired with point i
    of the source set. Nothing here sorts or deduplicates.
    """
    N_DIMS = 3

    points: np.ndarray  # (N, 3) float

    def __post_init__(self):
        pts = np.asarray(self.points, dtype=float)
        if pts.size == 0:
            pts = pts.reshape(0, self.N_DIMS)
        pts = np.atleast_2d(pts)
        if pts.ndim != 2 or pts.shape[1] != self.N_DIMS:
            raise ValueError(
                f"points must have shape (N, {self.N_DIMS}), got {np.shape(self.points)}"
            )
        self.points = pts

    @classmethod
    def coerce(cls, value) -> 'PointSet':
        """Accept a PointSet, an (N, 3) array or a sequence of 3-tuples."""
        if isinstance(value, PointSet):
            return value
        return cls(value)

    @property
    def n_points(self) -> int: return self.points.shape[0]

    @property
    def is_empty(self) -> bool: return self.n_points == 0

    @property
    def centroid(self) -> np.ndarray:
        return np.mean(self.points, axis=0) if not self.is_empty else np.zeros(self.N_DIMS)

    def centered(self) -> np.ndarray:
        """Points with the centroid subtracted, (N, 3)."""
        return self.points - self.centroid

    def homogeneous(self) -> np.ndarray:
        """Points as rows [x, y, z, 1], (N, 4)."""
        return np.column_stack([self.points, np.ones(self.n_points)])

    def copy(self) -> 'PointSet':
        return PointSet(self.points.copy())

    def __len__(self) -> int:
        return self.n_points

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PointSet): return False
        if self.points.shape != other.points.shape: return False
        return bool(np.array_equal(self.points, other.points))
