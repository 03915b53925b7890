"""Synthetic landmark fixtures shared by the solver tests.

Body and hand points use the detector's world space (y down, metres, hip
centre at the origin). Face points use normalized image coordinates.
"""

from typing import Dict, Optional, Tuple

import numpy as np
import pytest

from lib_solver import BodyLandmark, FaceLandmark, HandLandmark, Rotation

BODY_POINTS = {
    BodyLandmark.NOSE: (0.02, -0.62, -0.1),
    BodyLandmark.LEFT_SHOULDER: (0.18, -0.48, -0.03),
    BodyLandmark.RIGHT_SHOULDER: (-0.17, -0.5, 0.02),
    BodyLandmark.LEFT_ELBOW: (0.3, -0.25, -0.05),
    BodyLandmark.RIGHT_ELBOW: (-0.32, -0.27, 0.06),
    BodyLandmark.LEFT_WRIST: (0.35, -0.05, -0.15),
    BodyLandmark.RIGHT_WRIST: (-0.3, -0.02, -0.12),
    BodyLandmark.LEFT_HIP: (0.1, 0.01, -0.01),
    BodyLandmark.RIGHT_HIP: (-0.1, -0.01, 0.01),
    BodyLandmark.LEFT_KNEE: (0.13, 0.4, -0.06),
    BodyLandmark.RIGHT_KNEE: (-0.11, 0.41, 0.05),
}

# finger base x offsets for thumb, index, middle, ring, pinky
_FINGER_BASE_X = (-0.03, -0.015, 0.0, 0.015, 0.03)


def make_body(overrides: Optional[Dict[BodyLandmark, Tuple[float, float, float]]] = None) -> np.ndarray:
    points = np.zeros((len(BodyLandmark), 3))
    for slot, xyz in BODY_POINTS.items():
        points[slot] = xyz
    for slot, xyz in (overrides or {}).items():
        points[slot] = xyz
    return points


def make_hand() -> np.ndarray:
    points = np.zeros((len(HandLandmark), 3))
    for f, bx in enumerate(_FINGER_BASE_X):
        for j in range(4):
            points[1 + f * 4 + j] = (
                bx * (1.0 + 0.3 * j) + 0.002 * j * j,
                -(0.03 + 0.025 * j) + 0.004 * j * j,
                -0.01 * j * j - 0.003 * f,
            )
    return points


def make_face(
    left_eye_ratio: float = 0.3,
    right_eye_ratio: float = 0.3,
    mouth_ratio: float = 0.35,
    corner_lift: float = 0.0,
    iris_offset: Optional[float] = None,
) -> Dict[int, Tuple[float, float, float]]:
    """Face mesh subset with 0.1-wide eyes and mouth.

    Eye and mouth heights are ratio * width. `iris_offset` shifts both irises
    horizontally from the eye centres; None leaves the iris points out.
    """

    def eye(outer_x: float, inner_x: float, ratio: float):
        cx = (outer_x + inner_x) / 2.0
        half = ratio * 0.05
        return (outer_x, 0.4, 0.0), (inner_x, 0.4, 0.0), (cx, 0.4 - half, 0.0), (cx, 0.4 + half, 0.0)

    face: Dict[int, Tuple[float, float, float]] = {}
    (
        face[FaceLandmark.LEFT_EYE_OUTER],
        face[FaceLandmark.LEFT_EYE_INNER],
        face[FaceLandmark.LEFT_EYE_TOP],
        face[FaceLandmark.LEFT_EYE_BOTTOM],
    ) = eye(0.3, 0.4, left_eye_ratio)
    (
        face[FaceLandmark.RIGHT_EYE_OUTER],
        face[FaceLandmark.RIGHT_EYE_INNER],
        face[FaceLandmark.RIGHT_EYE_TOP],
        face[FaceLandmark.RIGHT_EYE_BOTTOM],
    ) = eye(0.7, 0.6, right_eye_ratio)

    half = mouth_ratio * 0.05
    face[FaceLandmark.UPPER_LIP] = (0.5, 0.7 - half, 0.0)
    face[FaceLandmark.LOWER_LIP] = (0.5, 0.7 + half, 0.0)
    face[FaceLandmark.MOUTH_LEFT] = (0.45, 0.7 - corner_lift, 0.0)
    face[FaceLandmark.MOUTH_RIGHT] = (0.55, 0.7 - corner_lift, 0.0)

    if iris_offset is not None:
        face[FaceLandmark.LEFT_IRIS] = (0.35 + iris_offset, 0.4, 0.0)
        face[FaceLandmark.RIGHT_IRIS] = (0.65 + iris_offset, 0.4, 0.0)
    return {int(k): v for k, v in face.items()}


def mirror_body(points: np.ndarray) -> np.ndarray:
    """Reflect through the YZ plane and swap left / right slots."""

    reflected = np.array(points, dtype=float)
    reflected[:, 0] *= -1.0
    mirrored = reflected.copy()
    for slot in BodyLandmark:
        if slot.name.startswith("LEFT_"):
            other = BodyLandmark["RIGHT_" + slot.name[len("LEFT_"):]]
            mirrored[slot] = reflected[other]
            mirrored[other] = reflected[slot]
    return mirrored


def mirror_hand(points: np.ndarray) -> np.ndarray:
    reflected = np.array(points, dtype=float)
    reflected[:, 0] *= -1.0
    return reflected


def assert_same_rotation(actual: Rotation, expected, atol: float = 1e-6) -> None:
    """Compare quaternions up to sign (q and -q are the same rotation)."""

    a = actual.as_array()
    e = np.asarray(expected.as_array() if isinstance(expected, Rotation) else expected, dtype=float)
    assert abs(float(np.dot(a, e))) == pytest.approx(1.0, abs=atol), f"{actual} != {e}"


@pytest.fixture
def body() -> np.ndarray:
    return make_body()


@pytest.fixture
def hand() -> np.ndarray:
    return make_hand()


@pytest.fixture
def face() -> Dict[int, Tuple[float, float, float]]:
    return make_face()
