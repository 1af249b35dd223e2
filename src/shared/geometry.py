"""
#WHERE
    Used by physics_engine/joint_drive.py, physics_engine/crawler.py,
    rl_controller/agent.py and tests.

#WHAT
    Frame and quaternion helpers in pure numpy.  Quaternions follow the
    PyBullet (x, y, z, w) order; the world is Z-up.

#INPUT
    Vectors, quaternions, scalar ranges.

#OUTPUT
    Transformed vectors, quaternions, 3x3 rotation matrices.
"""
from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from src.shared.constants import WORLD_UP

Quat = Tuple[float, float, float, float]

_EPS = 1e-9


# ── Scalars ──────────────────────────────────────────────────────────────────

def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation with *t* clamped to [0, 1]."""
    t = min(1.0, max(0.0, t))
    return a + (b - a) * t


def inverse_lerp(a: float, b: float, value: float) -> float:
    """Position of *value* between *a* and *b*, clamped; 0 when a == b."""
    if a == b:
        return 0.0
    return min(1.0, max(0.0, (value - a) / (b - a)))


# ── Vectors ──────────────────────────────────────────────────────────────────

def normalize(v: Sequence[float]) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    n = np.linalg.norm(v)
    if n < _EPS:
        return np.zeros(3, dtype=np.float64)
    return v / n


def random_inside_unit_sphere(rng: np.random.Generator) -> np.ndarray:
    """Uniform sample from the solid unit ball."""
    direction = normalize(rng.normal(size=3))
    while not direction.any():
        direction = normalize(rng.normal(size=3))
    return direction * rng.random() ** (1.0 / 3.0)


# ── Quaternions ──────────────────────────────────────────────────────────────

def axis_angle_to_quat(axis: Sequence[float], angle: float) -> Quat:
    axis = normalize(axis)
    s = np.sin(angle / 2.0)
    return (float(axis[0] * s), float(axis[1] * s),
            float(axis[2] * s), float(np.cos(angle / 2.0)))


def yaw_quat(yaw: float) -> Quat:
    """Rotation of *yaw* radians about world Z."""
    return axis_angle_to_quat(WORLD_UP, yaw)


def quat_multiply(q1: Sequence[float], q2: Sequence[float]) -> Quat:
    """Hamilton product q1 * q2 (apply q2 first)."""
    x1, y1, z1, w1 = q1
    x2, y2, z2, w2 = q2
    return (
        float(w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2),
        float(w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2),
        float(w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2),
        float(w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2),
    )


def quat_to_mat(q: Sequence[float]) -> np.ndarray:
    """(x, y, z, w) quaternion to 3x3 rotation matrix (columns = local axes)."""
    x, y, z, w = q
    n = x * x + y * y + z * z + w * w
    if n < _EPS:
        return np.eye(3)
    s = 2.0 / n
    return np.array([
        [1 - s * (y * y + z * z), s * (x * y - z * w),     s * (x * z + y * w)],
        [s * (x * y + z * w),     1 - s * (x * x + z * z), s * (y * z - x * w)],
        [s * (x * z - y * w),     s * (y * z + x * w),     1 - s * (x * x + y * y)],
    ], dtype=np.float64)


def rotate(q: Sequence[float], v: Sequence[float]) -> np.ndarray:
    return quat_to_mat(q) @ np.asarray(v, dtype=np.float64)


# ── Frames ───────────────────────────────────────────────────────────────────

def look_rotation(direction: Sequence[float], up: Sequence[float] = WORLD_UP) -> np.ndarray:
    """
    Rotation whose forward (+X) axis points along *direction* and whose
    up (+Z) axis is as close to *up* as possible.

    A zero direction gives the identity.  A direction parallel to *up*
    keeps forward exact and picks world +Y as the lateral axis.
    """
    forward = normalize(direction)
    if not forward.any():
        return np.eye(3)
    left = np.cross(np.asarray(up, dtype=np.float64), forward)
    if np.linalg.norm(left) < 1e-6:
        left = np.array([0.0, 1.0, 0.0])
        left = left - np.dot(left, forward) * forward
    left = normalize(left)
    up_axis = np.cross(forward, left)
    return np.column_stack([forward, left, up_axis])


def inverse_transform_direction(rot_mat: np.ndarray, v: Sequence[float]) -> np.ndarray:
    """Express world vector *v* in the frame spanned by *rot_mat*."""
    return rot_mat.T @ np.asarray(v, dtype=np.float64)


def inverse_transform_point(
    origin: Sequence[float],
    orientation: Sequence[float],
    point: Sequence[float],
) -> np.ndarray:
    """World *point* expressed in the local frame at *origin* / *orientation*."""
    offset = np.asarray(point, dtype=np.float64) - np.asarray(origin, dtype=np.float64)
    return quat_to_mat(orientation).T @ offset
