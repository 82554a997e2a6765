# -*- coding: utf-8 -*-
"""
tests/unit/test_tps.py

Tests for the thin-plate spline solver.
"""
import logging

import pytest
import numpy as np
from tagreg.core.derive.tps import build_tps_system, solve_tps
from tagreg.core.transform import apply_tps


@pytest.fixture
def tag_points():
    return np.array([
        [10.0, 20.0, 30.0],
        [-15.0, 25.0, 10.0],
        [30.0, -10.0, 45.0],
        [5.0, 40.0, -20.0],
        [-25.0, -30.0, 15.0],
        [20.0, 15.0, -35.0],
        [-10.0, -5.0, 50.0],
        [35.0, 30.0, 25.0],
    ])


def bend(pts):
    """Smooth non-linear deformation."""
    out = pts.copy()
    out[:, 0] += 2.0 * np.sin(pts[:, 1] / 20.0)
    out[:, 2] += 0.01 * pts[:, 0] * pts[:, 1] / 10.0
    return out


class TestTpsSystem:
    """Block structure of the (n+4) x (n+4) system."""

    def test_blocks(self, tag_points):
        L = build_tps_system(tag_points)
        n = len(tag_points)
        assert L.shape == (n + 4, n + 4)
        np.testing.assert_allclose(L, L.T)
        np.testing.assert_array_equal(np.diag(L)[:n], 0.0)
        np.testing.assert_array_equal(L[n:, n:], 0.0)
        np.testing.assert_array_equal(L[:n, n], 1.0)
        np.testing.assert_array_equal(L[:n, n + 1:], tag_points)

    def test_kernel_is_distance(self, tag_points):
        L = build_tps_system(tag_points)
        assert L[0, 1] == pytest.approx(np.linalg.norm(tag_points[0] - tag_points[1]))


class TestSolveTps:
    """Exact interpolation and the affine part."""

    def test_identity(self, tag_points):
        fit = solve_tps(tag_points, tag_points)
        n = len(tag_points)
        np.testing.assert_allclose(fit.weights[:n], 0.0, atol=1e-9)
        np.testing.assert_allclose(fit.affine_matrix, np.eye(4), atol=1e-9)

    def test_interpolates_tags(self, tag_points):
        target = bend(tag_points)
        fit = solve_tps(target, tag_points)
        mapped = apply_tps(fit.source_points, fit.weights, tag_points)
        np.testing.assert_allclose(mapped, target, atol=1e-3)

    def test_shapes(self, tag_points):
        fit = solve_tps(bend(tag_points), tag_points)
        n = len(tag_points)
        assert fit.source_points.shape == (n, 3)
        assert fit.weights.shape == (n + 4, 3)
        assert fit.affine_matrix.shape == (4, 4)

    def test_affine_part_from_weights(self, tag_points):
        fit = solve_tps(bend(tag_points), tag_points)
        n = len(tag_points)
        np.testing.assert_allclose(fit.affine_matrix[:3, 3], fit.weights[n])
        np.testing.assert_allclose(fit.affine_matrix[:3, :3], fit.weights[n + 1:].T)
        np.testing.assert_array_equal(fit.affine_matrix[3], [0.0, 0.0, 0.0, 1.0])

    def test_pure_affine_data(self, tag_points):
        """Affine data needs no kernel weights."""
        M = np.array([[1.1, 0.1, 0.0], [0.0, 0.9, 0.2], [0.05, 0.0, 1.2]])
        target = tag_points @ M.T + np.array([1.0, 2.0, 3.0])
        fit = solve_tps(target, tag_points)
        np.testing.assert_allclose(fit.affine_matrix[:3, :3], M, atol=1e-8)
        np.testing.assert_allclose(fit.weights[:len(tag_points)], 0.0, atol=1e-8)

    def test_duplicate_centres_fall_back(self, tag_points, caplog):
        source = np.vstack([tag_points, tag_points[:1]])
        target = np.vstack([bend(tag_points), bend(tag_points)[:1]])
        with caplog.at_level(logging.WARNING, logger="tagreg.core.derive.tps"):
            fit = solve_tps(target, source)
        assert "rank deficient" in caplog.text
        assert np.all(np.isfinite(fit.weights))
        mapped = apply_tps(fit.source_points, fit.weights, source)
        np.testing.assert_allclose(mapped, target, atol=1e-3)

    def test_count_mismatch(self, tag_points):
        with pytest.raises(ValueError):
            solve_tps(tag_points, tag_points[:-1])
