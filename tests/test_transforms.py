"""Tests for matrix and quaternion helpers."""

import math

import numpy as np
import pytest

from gltfgraph.transforms import (
    AXIS_Y,
    AXIS_Z,
    axis_angle_from_quaternion,
    compose_trs,
    matrix_from_column_major,
    matrix_from_scale,
    matrix_from_translation,
    quaternion_from_axis_angle,
    quaternion_from_euler,
    quaternion_multiply,
    quaternion_normalize,
    quaternion_slerp,
    rotation_matrix_from_axis_angle,
    rotation_matrix_from_quaternion,
)


class TestMatrices:
    def test_translation(self):
        m = matrix_from_translation(1.0, 2.0, 3.0)
        np.testing.assert_array_equal(m @ [0, 0, 0, 1], [1, 2, 3, 1])

    def test_uniform_and_triple_scale(self):
        np.testing.assert_array_equal(matrix_from_scale(2.0), np.diag([2, 2, 2, 1]))
        np.testing.assert_array_equal(matrix_from_scale((1, 2, 3)), np.diag([1, 2, 3, 1]))

    def test_column_major(self):
        values = list(range(16))
        m = matrix_from_column_major(values)
        assert m[0, 1] == 4.0
        assert m[1, 0] == 1.0

    def test_rotation_about_z(self):
        m = rotation_matrix_from_axis_angle(AXIS_Z, math.pi / 2)
        np.testing.assert_allclose(m @ [1, 0, 0, 1], [0, 1, 0, 1], atol=1e-12)

    def test_compose_order(self):
        # scale, then rotate, then translate
        q = quaternion_from_axis_angle(AXIS_Z, math.pi / 2)
        m = compose_trs((10, 0, 0), q, (2, 2, 2))
        np.testing.assert_allclose(m @ [1, 0, 0, 1], [10, 2, 0, 1], atol=1e-12)

    def test_identity_quaternion(self):
        np.testing.assert_array_equal(rotation_matrix_from_quaternion((0, 0, 0, 1)), np.eye(4))


class TestQuaternions:
    def test_normalize(self):
        np.testing.assert_allclose(quaternion_normalize((0, 0, 0, 2)), [0, 0, 0, 1])

    def test_normalize_zero_gives_identity(self):
        np.testing.assert_array_equal(quaternion_normalize((0, 0, 0, 0)), [0, 0, 0, 1])

    def test_multiply_composes_rotations(self):
        quarter = quaternion_from_axis_angle(AXIS_Y, math.pi / 2)
        half = quaternion_multiply(quarter, quarter)
        np.testing.assert_allclose(half, quaternion_from_axis_angle(AXIS_Y, math.pi), atol=1e-12)

    def test_axis_angle_round_trip(self):
        axis, angle = axis_angle_from_quaternion(quaternion_from_axis_angle((0, 0, 2), 1.2))
        np.testing.assert_allclose(axis, [0, 0, 1], atol=1e-12)
        assert angle == pytest.approx(1.2)

    def test_axis_angle_identity(self):
        axis, angle = axis_angle_from_quaternion((0, 0, 0, 1))
        np.testing.assert_array_equal(axis, [1, 0, 0])
        assert angle == 0.0

    def test_euler_single_axis(self):
        np.testing.assert_allclose(
            quaternion_from_euler(0.0, 0.7, 0.0), quaternion_from_axis_angle(AXIS_Y, 0.7), atol=1e-12
        )

    def test_euler_order_roll_first(self):
        q = quaternion_from_euler(math.pi / 2, 0.0, math.pi / 2)
        m = rotation_matrix_from_quaternion(q)
        # roll maps X to Y, then pitch maps Y to Z
        np.testing.assert_allclose(m @ [1, 0, 0, 1], [0, 0, 1, 1], atol=1e-12)

    def test_slerp_endpoints(self):
        a = quaternion_from_axis_angle(AXIS_Z, 0.0)
        b = quaternion_from_axis_angle(AXIS_Z, 1.0)
        np.testing.assert_allclose(quaternion_slerp(a, b, 0.0), a, atol=1e-12)
        np.testing.assert_allclose(quaternion_slerp(a, b, 1.0), b, atol=1e-12)

    def test_slerp_takes_short_arc(self):
        a = np.array([0.0, 0.0, 0.0, 1.0])
        b = -quaternion_from_axis_angle(AXIS_Z, 0.5)
        mid = quaternion_slerp(a, b, 0.5)
        np.testing.assert_allclose(mid, quaternion_from_axis_angle(AXIS_Z, 0.25), atol=1e-12)

    def test_slerp_nearly_parallel(self):
        a = quaternion_from_axis_angle(AXIS_Z, 0.0)
        b = quaternion_from_axis_angle(AXIS_Z, 1e-4)
        mid = quaternion_slerp(a, b, 0.5)
        assert np.linalg.norm(mid) == pytest.approx(1.0)
