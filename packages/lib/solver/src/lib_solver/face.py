"""Eye gaze, eye / mouth openness and smile estimated from face mesh points.

All functions here are pure functions of the current frame. Points are
(x, y, z) arrays in the face mesh's normalized image space (y down).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation as ScipyRotation

from .config import SolverConfig
from .data import FaceFrame, FaceLandmark, PoseSolverResult, Rotation

_DEFAULT_CONFIG = SolverConfig()


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - b))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def estimate_eye_gaze(
    outer: np.ndarray, inner: np.ndarray, iris: np.ndarray
) -> Tuple[float, float]:
    """Iris offset from the eye centre, normalized by the eye box.

    The eye is treated as a half-ellipse: its height is half its width. x is
    clamped to [-1, 1] and y to [-0.5, 0.5].
    """

    center_x = (outer[0] + inner[0]) / 2.0
    center_y = (outer[1] + inner[1]) / 2.0
    width = abs(outer[0] - inner[0])
    if width == 0.0:
        return 0.0, 0.0
    height = width * 0.5

    x = (iris[0] - center_x) / (width * 0.5)
    y = (iris[1] - center_y) / (height * 0.5)
    return _clamp(float(x), -1.0, 1.0), _clamp(float(y), -0.5, 0.5)


def gaze_to_rotation(
    gaze_x: float, gaze_y: float, config: SolverConfig = _DEFAULT_CONFIG
) -> Rotation:
    """Map a gaze offset onto yaw (about Y) and pitch (about X)."""

    pitch = gaze_y * config.gaze_max_pitch
    yaw = -gaze_x * config.gaze_max_yaw
    return Rotation.from_scipy(ScipyRotation.from_euler("YXZ", [yaw, pitch, 0.0]))


def estimate_eye_openness(
    outer: np.ndarray,
    inner: np.ndarray,
    top: np.ndarray,
    bottom: np.ndarray,
    config: SolverConfig = _DEFAULT_CONFIG,
) -> float:
    """Eye aspect ratio re-mapped onto 0 (closed) .. 1 (open)."""

    width = _distance(outer, inner)
    if width == 0.0:
        return 1.0
    ratio = _distance(top, bottom) / width

    if ratio <= config.eye_closed_ratio:
        return 0.0
    if ratio >= config.eye_open_ratio:
        return 1.0
    return (ratio - config.eye_closed_ratio) / (
        config.eye_open_ratio - config.eye_closed_ratio
    )


def estimate_mouth_openness(
    upper_lip: np.ndarray,
    lower_lip: np.ndarray,
    left: np.ndarray,
    right: np.ndarray,
    config: SolverConfig = _DEFAULT_CONFIG,
) -> float:
    width = _distance(left, right)
    if width == 0.0:
        return 0.0
    ratio = _distance(upper_lip, lower_lip) / width
    openness = (ratio - config.mouth_ratio_offset) / config.mouth_ratio_scale
    return _clamp(openness, 0.0, config.mouth_max_openness)


def estimate_smile(
    upper_lip: np.ndarray,
    lower_lip: np.ndarray,
    left: np.ndarray,
    right: np.ndarray,
    config: SolverConfig = _DEFAULT_CONFIG,
) -> float:
    """Smile amount from how far the mouth corners sit above the lip centre."""

    center_y = (upper_lip[1] + lower_lip[1]) / 2.0
    corner_y = (left[1] + right[1]) / 2.0
    raw = float(center_y - corner_y)
    if raw <= config.smile_threshold:
        return 0.0
    return _clamp((raw - config.smile_threshold) * config.smile_gain, 0.0, 1.0)


@dataclass(frozen=True)
class FaceExpression:
    left_eye_rotation: Rotation
    right_eye_rotation: Rotation
    left_eye_openness: float
    right_eye_openness: float
    mouth_openness: float
    smile: float


def estimate_face_expression(
    face: FaceFrame, config: SolverConfig = _DEFAULT_CONFIG
) -> FaceExpression:
    """Run every face estimator over one frame."""

    if face.has_iris:
        left_gaze = estimate_eye_gaze(
            face[FaceLandmark.LEFT_EYE_OUTER],
            face[FaceLandmark.LEFT_EYE_INNER],
            face[FaceLandmark.LEFT_IRIS],
        )
        right_gaze = estimate_eye_gaze(
            face[FaceLandmark.RIGHT_EYE_INNER],
            face[FaceLandmark.RIGHT_EYE_OUTER],
            face[FaceLandmark.RIGHT_IRIS],
        )
        gaze = gaze_to_rotation(
            (left_gaze[0] + right_gaze[0]) / 2.0,
            (left_gaze[1] + right_gaze[1]) / 2.0,
            config,
        )
    else:
        gaze = Rotation.identity()

    # The camera view is mirrored: the avatar's left eye follows the mesh's right eye.
    left_openness = estimate_eye_openness(
        face[FaceLandmark.RIGHT_EYE_INNER],
        face[FaceLandmark.RIGHT_EYE_OUTER],
        face[FaceLandmark.RIGHT_EYE_TOP],
        face[FaceLandmark.RIGHT_EYE_BOTTOM],
        config,
    )
    right_openness = estimate_eye_openness(
        face[FaceLandmark.LEFT_EYE_OUTER],
        face[FaceLandmark.LEFT_EYE_INNER],
        face[FaceLandmark.LEFT_EYE_TOP],
        face[FaceLandmark.LEFT_EYE_BOTTOM],
        config,
    )
    lips = (
        face[FaceLandmark.UPPER_LIP],
        face[FaceLandmark.LOWER_LIP],
        face[FaceLandmark.MOUTH_LEFT],
        face[FaceLandmark.MOUTH_RIGHT],
    )
    return FaceExpression(
        left_eye_rotation=gaze,
        right_eye_rotation=gaze,
        left_eye_openness=left_openness,
        right_eye_openness=right_openness,
        mouth_openness=estimate_mouth_openness(*lips, config=config),
        smile=estimate_smile(*lips, config=config),
    )


@dataclass(frozen=True)
class ExpressionWeights:
    """Morph weights for avatars driven by blend shapes (0 = neutral)."""

    blink: float
    wink_left: float
    wink_right: float
    mouth_open: float
    smile: float


def expression_weights(result: PoseSolverResult) -> ExpressionWeights:
    left_blink = 1.0 - result.left_eye_openness
    right_blink = 1.0 - result.right_eye_openness
    return ExpressionWeights(
        blink=(left_blink + right_blink) / 2.0,
        wink_left=left_blink if left_blink > 0.5 and right_blink < 0.3 else 0.0,
        wink_right=right_blink if right_blink > 0.5 and left_blink < 0.3 else 0.0,
        mouth_open=result.mouth_openness,
        smile=result.smile,
    )


__all__ = [
    "ExpressionWeights",
    "FaceExpression",
    "estimate_eye_gaze",
    "estimate_eye_openness",
    "estimate_face_expression",
    "estimate_mouth_openness",
    "estimate_smile",
    "expression_weights",
    "gaze_to_rotation",
]
