# -*- coding: utf-8 -*-
"""
tests/unit/test_transform_result.py

Tests for TransformResult evaluation: forward, inverse and TPS inversion.
"""
import dataclasses

import pytest
import numpy as np
from tagreg import TransformFamily, TransformResult, NotInvertibleError, DEFAULT_SETTINGS, compute_transform
from tagreg.core.rotation import build_affine_matrix


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


@pytest.fixture
def tps_result(tag_points):
    target = tag_points.copy()
    target[:, 0] += 1.5 * np.sin(tag_points[:, 1] / 25.0)
    target[:, 1] += 0.02 * tag_points[:, 2]
    return compute_transform(target, tag_points, TransformFamily.THIN_PLATE_SPLINE)


class TestInvalidResult:
    """An invalid result leaves points untouched."""

    def test_passthrough(self):
        result = TransformResult.invalid(TransformFamily.RIGID)
        p = np.array([1.0, 2.0, 3.0])
        assert not result.valid
        np.testing.assert_array_equal(result.transform_point(p), p)
        np.testing.assert_array_equal(result.inverse_transform_point(p), p)
        assert result.n_pairs == 0
        assert "invalid" in repr(result)

    def test_invalid_tps_is_linear(self):
        result = TransformResult.invalid(TransformFamily.THIN_PLATE_SPLINE)
        assert result.is_linear
        np.testing.assert_array_equal(result.transform_points(np.ones((2, 3))), np.ones((2, 3)))


class TestConstruction:
    """__post_init__ shape checks."""

    def test_matrix_must_be_4x4(self):
        with pytest.raises(ValueError):
            TransformResult(valid=True, family=TransformFamily.FULL_AFFINE, linear_matrix=np.eye(3))

    def test_tps_needs_weights(self, tag_points):
        with pytest.raises(ValueError):
            TransformResult(valid=True, family=TransformFamily.THIN_PLATE_SPLINE,
                            tps_source_points=tag_points)

    def test_tps_weight_shape(self, tag_points):
        with pytest.raises(ValueError):
            TransformResult(valid=True, family=TransformFamily.THIN_PLATE_SPLINE,
                            tps_source_points=tag_points,
                            tps_weights=np.zeros((len(tag_points), 3)))


class TestLinearInverse:
    """Linear inverses are closed form."""

    def test_roundtrip(self, tag_points):
        mat = build_affine_matrix([4.0, -2.0, 7.0], [0.3, 0.1, -0.6], [1.2, 0.9, 1.0], shear=0.05)
        result = TransformResult(valid=True, family=TransformFamily.FULL_AFFINE, linear_matrix=mat)
        forward = result.transform_points(tag_points)
        np.testing.assert_allclose(result.inverse_transform_points(forward), tag_points, atol=1e-9)

    def test_inverse_matrix(self):
        mat = build_affine_matrix([1.0, 2.0, 3.0], [0.1, 0.2, 0.3])
        result = TransformResult(valid=True, family=TransformFamily.RIGID, linear_matrix=mat)
        np.testing.assert_allclose(result.inverse_matrix() @ mat, np.eye(4), atol=1e-12)

    def test_singular_raises(self):
        mat = np.diag([1.0, 1.0, 0.0, 1.0])
        result = TransformResult(valid=True, family=TransformFamily.FULL_AFFINE, linear_matrix=mat)
        with pytest.raises(NotInvertibleError):
            result.inverse_matrix()
        with pytest.raises(NotInvertibleError):
            result.inverse_transform_point([1.0, 2.0, 3.0])

    def test_linear_invert_point_converged(self):
        mat = build_affine_matrix([1.0, 0.0, 0.0], [0.0, 0.0, 0.5])
        result = TransformResult(valid=True, family=TransformFamily.RIGID, linear_matrix=mat)
        outcome = result.invert_point([3.0, 4.0, 5.0])
        assert outcome.converged
        assert outcome.iterations == 0
        np.testing.assert_allclose(result.transform_point(outcome.point), [3.0, 4.0, 5.0], atol=1e-12)


class TestTpsEvaluation:
    """Spline forward/inverse evaluation."""

    def test_is_not_linear(self, tps_result):
        assert tps_result.valid
        assert not tps_result.is_linear

    def test_forward_interpolates(self, tps_result):
        np.testing.assert_allclose(tps_result.per_pair_residual, 0.0, atol=1e-6)
        assert tps_result.average_residual < 1e-6

    def test_inverse_roundtrip(self, tps_result):
        q = np.array([5.0, 5.0, 5.0])
        p = tps_result.transform_point(q)
        np.testing.assert_allclose(tps_result.inverse_transform_point(p), q, atol=1e-4)

    def test_inverse_many_points(self, tps_result, tag_points):
        forward = tps_result.transform_points(tag_points)
        np.testing.assert_allclose(tps_result.inverse_transform_points(forward), tag_points, atol=1e-4)

    def test_invert_point_reports_convergence(self, tps_result):
        p = tps_result.transform_point([0.0, 10.0, -5.0])
        outcome = tps_result.invert_point(p)
        assert outcome.converged
        assert outcome.iterations <= 20

    def test_zero_iterations_not_converged(self, tps_result):
        """With no Newton steps the affine seed is returned as-is."""
        p = tps_result.transform_point([0.0, 10.0, -5.0])
        outcome = tps_result.invert_point(p, max_iterations=0)
        assert not outcome.converged
        assert outcome.iterations == 0
        assert outcome.point.shape == (3,)

    def test_repr(self, tps_result):
        assert "TPS" in repr(tps_result)
        assert "n=8" in repr(tps_result)


class TestSettingsReachInversion:
    """Newton limits come from the settings the result was computed with."""

    def test_settings_stored(self, tag_points):
        settings = dataclasses.replace(DEFAULT_SETTINGS, newton_step=1e-5)
        result = compute_transform(tag_points, tag_points, TransformFamily.THIN_PLATE_SPLINE, settings)
        assert result.settings is settings

    def test_iteration_cap_from_settings(self, tps_result):
        settings = dataclasses.replace(DEFAULT_SETTINGS, newton_max_iterations=0)
        capped = dataclasses.replace(tps_result, settings=settings)
        p = capped.transform_point([0.0, 10.0, -5.0])
        outcome = capped.invert_point(p)
        assert not outcome.converged
        assert outcome.iterations == 0

    def test_explicit_cap_overrides_settings(self, tps_result):
        settings = dataclasses.replace(DEFAULT_SETTINGS, newton_max_iterations=0)
        capped = dataclasses.replace(tps_result, settings=settings)
        p = capped.transform_point([0.0, 10.0, -5.0])
        assert capped.invert_point(p, max_iterations=20).converged

    def test_loose_tolerance_from_settings(self, tps_result):
        settings = dataclasses.replace(DEFAULT_SETTINGS, newton_tolerance=1e3)
        loose = dataclasses.replace(tps_result, settings=settings)
        outcome = loose.invert_point(loose.transform_point([0.0, 10.0, -5.0]))
        assert outcome.converged
        assert outcome.iterations == 0

    def test_step_from_settings(self, tps_result):
        settings = dataclasses.replace(DEFAULT_SETTINGS, newton_step=1e-3)
        stepped = dataclasses.replace(tps_result, settings=settings)
        q = np.array([5.0, 5.0, 5.0])
        np.testing.assert_allclose(stepped.inverse_transform_point(stepped.transform_point(q)), q, atol=1e-4)

    def test_computed_with_settings(self, tag_points):
        target = tag_points.copy()
        target[:, 0] += 1.5 * np.sin(tag_points[:, 1] / 25.0)
        settings = dataclasses.replace(DEFAULT_SETTINGS, newton_max_iterations=0)
        result = compute_transform(target, tag_points, TransformFamily.THIN_PLATE_SPLINE, settings)
        outcome = result.invert_point(result.transform_point([0.0, 10.0, -5.0]))
        assert not outcome.converged


class TestArrayCoercion:
    """Array fields accept nested lists."""

    def test_nested_list_matrix(self):
        result = TransformResult(valid=True, family=TransformFamily.FULL_AFFINE,
                                 linear_matrix=np.eye(4).tolist())
        assert isinstance(result.linear_matrix, np.ndarray)
        np.testing.assert_array_equal(result.transform_point([1.0, 2.0, 3.0]), [1.0, 2.0, 3.0])

    def test_nested_list_wrong_shape(self):
        with pytest.raises(ValueError):
            TransformResult(valid=True, family=TransformFamily.FULL_AFFINE,
                            linear_matrix=[[1.0, 0.0], [0.0, 1.0]])
