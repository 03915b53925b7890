"""Vector and quaternion helpers shared by the joint strategies.

Every helper here is total over finite input: degenerate geometry (zero-length
segments, parallel or anti-parallel vectors) degrades to the identity rotation
instead of raising.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation as ScipyRotation

from .data import Rotation

EPSILON = 1e-8

UNIT_X = np.array([1.0, 0.0, 0.0], dtype=np.float64)
UNIT_Y = np.array([0.0, 1.0, 0.0], dtype=np.float64)


def _normalize(vector: np.ndarray) -> Optional[np.ndarray]:
    """Return a normalized copy of `vector`, or None when it has no length."""

    norm = float(np.linalg.norm(vector))
    if norm < EPSILON or not math.isfinite(norm):
        return None
    return np.asarray(vector, dtype=np.float64) / norm


def flip_vertical(vector: np.ndarray) -> np.ndarray:
    """Convert a detector-space (y-down) vector into avatar space (y-up)."""

    flipped = np.array(vector, dtype=np.float64, copy=True)
    flipped[1] = -flipped[1]
    return flipped


def segment_direction(origin: np.ndarray, target: np.ndarray) -> Optional[np.ndarray]:
    """Unit direction from `origin` to `target` in avatar space.

    Returns None for a zero-length segment.
    """

    direction = _normalize(np.asarray(target, dtype=np.float64) - origin)
    if direction is None:
        return None
    return flip_vertical(direction)


def to_local(direction: np.ndarray, parent: Rotation) -> np.ndarray:
    """Express a world direction in the frame of `parent`."""

    if parent.is_identity(0.0):
        return np.array(direction, dtype=np.float64, copy=True)
    # scipy rejects read-only buffers
    return parent.to_scipy().apply(np.array(direction, dtype=np.float64), inverse=True)


def from_axis_angle(axis: np.ndarray, angle: float) -> ScipyRotation:
    """Rotation of `angle` radians about `axis`; zero axis yields identity."""

    axis_n = _normalize(axis)
    if axis_n is None:
        return ScipyRotation.identity()
    return ScipyRotation.from_rotvec(axis_n * float(angle))


def angle_between(a: np.ndarray, b: np.ndarray) -> float:
    """Unsigned angle between two vectors in radians (0..pi)."""

    a_n = _normalize(a)
    b_n = _normalize(b)
    if a_n is None or b_n is None:
        return 0.0
    sin = float(np.linalg.norm(np.cross(a_n, b_n)))
    cos = float(np.dot(a_n, b_n))
    return math.atan2(sin, cos)


def rotation_between_scipy(source: np.ndarray, target: np.ndarray) -> ScipyRotation:
    """Shortest-arc rotation taking `source` onto `target`.

    Parallel, anti-parallel and zero-length inputs all yield the identity.
    """

    a = _normalize(source)
    b = _normalize(target)
    if a is None or b is None:
        return ScipyRotation.identity()

    axis = np.cross(a, b)
    sin = float(np.linalg.norm(axis))
    if sin < EPSILON:
        # no unique minimal arc for opposite vectors; same-direction needs none
        return ScipyRotation.identity()
    angle = math.atan2(sin, float(np.dot(a, b)))
    return ScipyRotation.from_rotvec(axis / sin * angle)


def rotation_between(source: np.ndarray, target: np.ndarray) -> Rotation:
    return Rotation.from_scipy(rotation_between_scipy(source, target))


def face_towards(forward: np.ndarray, up: np.ndarray) -> ScipyRotation:
    """Rotation whose local +Z points along `forward` with +Y towards `up`.

    Returns identity when `forward` has no length or is parallel to `up`.
    """

    z_axis = _normalize(forward)
    if z_axis is None:
        return ScipyRotation.identity()
    x_axis = _normalize(np.cross(up, z_axis))
    if x_axis is None:
        return ScipyRotation.identity()
    y_axis = np.cross(z_axis, x_axis)
    return ScipyRotation.from_matrix(np.column_stack([x_axis, y_axis, z_axis]))


def compose(*rotations: Rotation) -> Rotation:
    """Quaternion product, left to right (`compose(a, b)` == a * b)."""

    result = ScipyRotation.identity()
    for rotation in rotations:
        result = result * rotation.to_scipy()
    return Rotation.from_scipy(result)


__all__ = [
    "UNIT_X",
    "UNIT_Y",
    "angle_between",
    "compose",
    "face_towards",
    "flip_vertical",
    "from_axis_angle",
    "rotation_between",
    "rotation_between_scipy",
    "segment_direction",
    "to_local",
]
