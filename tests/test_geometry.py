"""Tests for shared geometry helpers - frames, quaternions, interpolation."""

import math

import numpy as np
import pytest

from src.shared.geometry import (
    axis_angle_to_quat, inverse_lerp, inverse_transform_direction, inverse_transform_point,
    lerp, look_rotation, normalize, quat_multiply, quat_to_mat,
    random_inside_unit_sphere, rotate, yaw_quat,
)


class TestInterpolation:

    def test_lerp_endpoints(self):
        assert lerp(-45, 45, 0.0) == -45
        assert lerp(-45, 45, 1.0) == 45

    def test_lerp_midpoint(self):
        assert lerp(-45, 45, 0.5) == 0

    def test_lerp_clamps(self):
        assert lerp(0, 10, 1.5) == 10
        assert lerp(0, 10, -0.5) == 0

    def test_inverse_lerp(self):
        assert inverse_lerp(-45, 45, 22.5) == pytest.approx(0.75)

    def test_inverse_lerp_degenerate_range(self):
        assert inverse_lerp(0, 0, 0) == 0.0


class TestQuaternions:

    def test_identity_matrix(self):
        np.testing.assert_allclose(quat_to_mat((0, 0, 0, 1)), np.eye(3))

    def test_yaw_rotates_x_to_y(self):
        v = rotate(yaw_quat(math.pi / 2), (1, 0, 0))
        np.testing.assert_allclose(v, [0, 1, 0], atol=1e-9)

    def test_pitch_about_y_points_x_down(self):
        v = rotate(axis_angle_to_quat((0, 1, 0), math.pi / 2), (1, 0, 0))
        np.testing.assert_allclose(v, [0, 0, -1], atol=1e-9)

    def test_multiply_composes(self):
        q = quat_multiply(yaw_quat(math.pi / 4), yaw_quat(math.pi / 4))
        np.testing.assert_allclose(rotate(q, (1, 0, 0)), [0, 1, 0], atol=1e-9)


class TestFrames:

    def test_look_rotation_along_x_is_identity(self):
        np.testing.assert_allclose(look_rotation((3, 0, 0)), np.eye(3), atol=1e-9)

    def test_look_rotation_zero_direction(self):
        np.testing.assert_allclose(look_rotation((0, 0, 0)), np.eye(3))

    def test_look_rotation_is_orthonormal(self):
        m = look_rotation((1, 2, 0.5))
        np.testing.assert_allclose(m.T @ m, np.eye(3), atol=1e-9)
        assert np.linalg.det(m) == pytest.approx(1.0)

    def test_look_rotation_straight_up(self):
        m = look_rotation((0, 0, 2))
        np.testing.assert_allclose(m[:, 0], [0, 0, 1], atol=1e-9)
        np.testing.assert_allclose(m.T @ m, np.eye(3), atol=1e-9)

    def test_direction_to_target_maps_to_forward(self):
        direction = (0, 5, 0)
        m = look_rotation(direction)
        np.testing.assert_allclose(inverse_transform_direction(m, direction), [5, 0, 0], atol=1e-9)

    def test_inverse_transform_point(self):
        local = inverse_transform_point((1, 1, 0), yaw_quat(math.pi / 2), (1, 2, 0))
        np.testing.assert_allclose(local, [1, 0, 0], atol=1e-9)

    def test_normalize_zero(self):
        assert not normalize((0, 0, 0)).any()


class TestRandomSphere:

    def test_samples_inside_unit_ball(self):
        rng = np.random.default_rng(0)
        samples = np.array([random_inside_unit_sphere(rng) for _ in range(500)])
        assert np.all(np.linalg.norm(samples, axis=1) <= 1.0)

    def test_seeded_is_reproducible(self):
        a = random_inside_unit_sphere(np.random.default_rng(7))
        b = random_inside_unit_sphere(np.random.default_rng(7))
        np.testing.assert_array_equal(a, b)
