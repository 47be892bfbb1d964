"""Matrix and quaternion helpers for node transforms and animation.

Matrices are 4x4 float64 arrays acting on column vectors (``M @ [x, y, z, 1]``).
Quaternions follow the glTF layout ``[x, y, z, w]``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

AXIS_X = np.array([1.0, 0.0, 0.0], dtype=np.float64)
AXIS_Y = np.array([0.0, 1.0, 0.0], dtype=np.float64)
AXIS_Z = np.array([0.0, 0.0, 1.0], dtype=np.float64)

IDENTITY_QUATERNION = (0.0, 0.0, 0.0, 1.0)


# ---------------------------------------------------------------------------
# Matrix construction
# ---------------------------------------------------------------------------


def matrix_from_translation(x: float, y: float, z: float) -> np.ndarray:
    m = np.eye(4, dtype=np.float64)
    m[:3, 3] = (x, y, z)
    return m


def matrix_from_scale(scale: float | Sequence[float]) -> np.ndarray:
    """Build a scale matrix from a uniform factor or an (sx, sy, sz) triple."""
    if isinstance(scale, (int, float)):
        sx = sy = sz = float(scale)
    else:
        sx, sy, sz = (float(v) for v in scale)
    return np.diag([sx, sy, sz, 1.0]).astype(np.float64)


def matrix_from_column_major(values: Sequence[float]) -> np.ndarray:
    """Convert a 16-element column-major array (as stored in glTF) to a 4x4 matrix."""
    return np.asarray(values, dtype=np.float64).reshape(4, 4).T.copy()


def rotation_matrix_from_axis_angle(axis: Sequence[float], angle: float) -> np.ndarray:
    """Rotation of ``angle`` radians about ``axis`` (normalized internally)."""
    return rotation_matrix_from_quaternion(quaternion_from_axis_angle(axis, angle))


def rotation_matrix_from_quaternion(q: Sequence[float]) -> np.ndarray:
    x, y, z, w = (float(v) for v in q)
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    m = np.eye(4, dtype=np.float64)
    m[0, 0] = 1.0 - 2.0 * (yy + zz)
    m[0, 1] = 2.0 * (xy - wz)
    m[0, 2] = 2.0 * (xz + wy)
    m[1, 0] = 2.0 * (xy + wz)
    m[1, 1] = 1.0 - 2.0 * (xx + zz)
    m[1, 2] = 2.0 * (yz - wx)
    m[2, 0] = 2.0 * (xz - wy)
    m[2, 1] = 2.0 * (yz + wx)
    m[2, 2] = 1.0 - 2.0 * (xx + yy)
    return m


def compose_trs(
    translation: Sequence[float],
    rotation: Sequence[float],
    scale: Sequence[float],
) -> np.ndarray:
    """Compose ``T @ R @ S``: scale first, then rotate, then translate."""
    t = matrix_from_translation(*translation)
    r = rotation_matrix_from_quaternion(rotation)
    s = matrix_from_scale(scale)
    return t @ r @ s


# ---------------------------------------------------------------------------
# Quaternions
# ---------------------------------------------------------------------------


def quaternion_normalize(q: Sequence[float]) -> np.ndarray:
    arr = np.asarray(q, dtype=np.float64)
    norm = math.sqrt(float(np.dot(arr, arr)))
    if norm == 0.0:
        return np.array(IDENTITY_QUATERNION, dtype=np.float64)
    return arr / norm


def quaternion_multiply(q: Sequence[float], r: Sequence[float]) -> np.ndarray:
    """Hamilton product ``q * r`` (apply ``r`` first, then ``q``)."""
    qx, qy, qz, qw = (float(v) for v in q)
    rx, ry, rz, rw = (float(v) for v in r)
    return np.array(
        [
            qw * rx + qx * rw + qy * rz - qz * ry,
            qw * ry - qx * rz + qy * rw + qz * rx,
            qw * rz + qx * ry - qy * rx + qz * rw,
            qw * rw - qx * rx - qy * ry - qz * rz,
        ],
        dtype=np.float64,
    )


def quaternion_from_axis_angle(axis: Sequence[float], angle: float) -> np.ndarray:
    ax = np.asarray(axis, dtype=np.float64)
    length = math.sqrt(float(np.dot(ax, ax)))
    if length == 0.0:
        return np.array(IDENTITY_QUATERNION, dtype=np.float64)
    ax = ax / length
    half = 0.5 * float(angle)
    s = math.sin(half)
    return np.array([ax[0] * s, ax[1] * s, ax[2] * s, math.cos(half)], dtype=np.float64)


def axis_angle_from_quaternion(q: Sequence[float]) -> tuple[np.ndarray, float]:
    """Return ``(axis, angle)``; the identity maps to the X axis with angle 0."""
    x, y, z, w = quaternion_normalize(q)
    w = max(-1.0, min(1.0, float(w)))
    angle = 2.0 * math.acos(w)
    s = math.sqrt(max(0.0, 1.0 - w * w))
    if s < 1e-12:
        return AXIS_X.copy(), 0.0
    return np.array([x / s, y / s, z / s], dtype=np.float64), angle


def quaternion_from_euler(pitch: float, yaw: float, roll: float) -> np.ndarray:
    """Quaternion for roll about Z, then pitch about X, then yaw about Y (radians)."""
    q_pitch = quaternion_from_axis_angle(AXIS_X, pitch)
    q_yaw = quaternion_from_axis_angle(AXIS_Y, yaw)
    q_roll = quaternion_from_axis_angle(AXIS_Z, roll)
    return quaternion_multiply(quaternion_multiply(q_yaw, q_pitch), q_roll)


def quaternion_slerp(a: Sequence[float], b: Sequence[float], t: float) -> np.ndarray:
    """Spherical interpolation along the shorter arc; falls back to nlerp when nearly parallel."""
    qa = quaternion_normalize(a)
    qb = quaternion_normalize(b)
    cos_theta = float(np.dot(qa, qb))
    if cos_theta < 0.0:
        qb = -qb
        cos_theta = -cos_theta

    if cos_theta > 0.9995:
        return quaternion_normalize(qa + (qb - qa) * t)

    theta = math.acos(min(1.0, cos_theta))
    sin_theta = math.sin(theta)
    wa = math.sin((1.0 - t) * theta) / sin_theta
    wb = math.sin(t * theta) / sin_theta
    return qa * wa + qb * wb
