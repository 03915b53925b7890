"""ランドマークと回転に関するデータの定義"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation as ScipyRotation


class LandmarkShapeError(ValueError):
    """ランドマーク列の長さや値が想定と異なる場合に送出される例外。"""


class BodyLandmark(IntEnum):
    """姿勢ランドマークのラベル (Mediapipe Pose の定義に基づく)"""

    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


class HandLandmark(IntEnum):
    """手のランドマークのラベル (Mediapipe Hands の定義に基づく)"""

    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class FaceLandmark(IntEnum):
    """表情推定で参照する Face Mesh (468/478 点) の番号。

    左右はカメラから見た向き (画像上では反対側に映る)。
    """

    LEFT_EYE_TOP = 159
    LEFT_EYE_BOTTOM = 145
    LEFT_EYE_OUTER = 33
    LEFT_EYE_INNER = 133
    LEFT_IRIS = 468
    RIGHT_EYE_TOP = 386
    RIGHT_EYE_BOTTOM = 374
    RIGHT_EYE_INNER = 362
    RIGHT_EYE_OUTER = 263
    RIGHT_IRIS = 473
    UPPER_LIP = 13
    LOWER_LIP = 14
    MOUTH_LEFT = 61
    MOUTH_RIGHT = 291


BODY_LANDMARK_COUNT = len(BodyLandmark)
HAND_LANDMARK_COUNT = len(HandLandmark)
# 虹彩を含む Face Mesh は 478 点、含まないものは 468 点
FACE_MESH_SIZES = (468, 478)
FACE_IRIS_LANDMARKS = (FaceLandmark.LEFT_IRIS, FaceLandmark.RIGHT_IRIS)

# 姿勢ランドマークの接続 (Mediapipe Pose の定義に基づく)
BODY_CONNECTIONS = frozenset(
    [
        (0, 1),
        (1, 2),
        (2, 3),
        (3, 7),
        (0, 4),
        (4, 5),
        (5, 6),
        (6, 8),
        (9, 10),
        (11, 12),
        (11, 13),
        (13, 15),
        (15, 17),
        (15, 19),
        (15, 21),
        (17, 19),
        (12, 14),
        (14, 16),
        (16, 18),
        (16, 20),
        (16, 22),
        (18, 20),
        (11, 23),
        (12, 24),
        (23, 24),
        (23, 25),
        (24, 26),
        (25, 27),
        (26, 28),
        (27, 29),
        (28, 30),
        (29, 31),
        (30, 32),
        (27, 31),
        (28, 32),
    ]
)


def _landmark_to_xyz(landmark: Any) -> Tuple[float, float, float]:
    """MediaPipe の landmark (x, y, z 属性を持つ) または長さ 3 の列を座標に変換する。"""
    if hasattr(landmark, "x") and hasattr(landmark, "y"):
        return (
            float(landmark.x),
            float(landmark.y),
            float(getattr(landmark, "z", 0.0) or 0.0),
        )
    values = list(landmark)
    if len(values) < 3:
        raise LandmarkShapeError(
            f"landmark needs (x, y, z) components, got {len(values)}"
        )
    x, y, z = values[:3]
    return float(x), float(y), float(z)


def _as_point_array(points: Any, expected: int, stream: str) -> np.ndarray:
    """(expected, 3) の読み取り専用配列に変換し、長さと有限性を検証する。"""
    if isinstance(points, np.ndarray):
        coords = np.array(points, dtype=np.float64)
    else:
        coords = np.array([_landmark_to_xyz(p) for p in points], dtype=np.float64)

    if coords.ndim != 2 or coords.shape[1] < 3:
        raise LandmarkShapeError(
            f"{stream} landmarks must have shape (N, 3), got {coords.shape}"
        )
    if coords.shape[0] != expected:
        raise LandmarkShapeError(
            f"{stream} frame needs exactly {expected} landmarks, got {coords.shape[0]}"
        )
    coords = coords[:, :3].copy()
    if not np.all(np.isfinite(coords)):
        raise LandmarkShapeError(f"{stream} landmarks contain non-finite values")
    coords.flags.writeable = False
    return coords


@dataclass(frozen=True, eq=False)
class BodyFrame:
    """全身 33 点のランドマークを保持するフレーム。

    attributes:
            points: numpy.ndarray (33, 3) 形式の (x, y, z)。検出器の座標系
                    (y 軸下向き) のまま保持する。
    """

    points: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "points", _as_point_array(self.points, BODY_LANDMARK_COUNT, "body")
        )

    @classmethod
    def from_landmarks(cls, landmarks: Iterable[Any]) -> "BodyFrame":
        """MediaPipe の landmark 列から BodyFrame を作る。"""
        return cls(points=np.array([_landmark_to_xyz(lm) for lm in landmarks]))

    def __getitem__(self, slot: BodyLandmark) -> np.ndarray:
        return self.points[BodyLandmark(slot)]

    def midpoint(self, *slots: BodyLandmark) -> np.ndarray:
        """複数スロットの重心を返す。"""
        return np.mean([self[slot] for slot in slots], axis=0)


@dataclass(frozen=True, eq=False)
class HandFrame:
    """片手 21 点のランドマークを保持するフレーム。"""

    points: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "points", _as_point_array(self.points, HAND_LANDMARK_COUNT, "hand")
        )

    @classmethod
    def from_landmarks(cls, landmarks: Iterable[Any]) -> "HandFrame":
        return cls(points=np.array([_landmark_to_xyz(lm) for lm in landmarks]))

    def __getitem__(self, slot: HandLandmark) -> np.ndarray:
        return self.points[HandLandmark(slot)]

    def midpoint(self, *slots: HandLandmark) -> np.ndarray:
        return np.mean([self[slot] for slot in slots], axis=0)


@dataclass(frozen=True, eq=False)
class FaceFrame:
    """Face Mesh のうち表情推定に使う点だけを保持するフレーム。

    attributes:
            points: Face Mesh 番号から (x, y, z) への対応。虹彩 (468, 473) 以外の
                    FaceLandmark はすべて必須。
    """

    points: Mapping[int, np.ndarray]

    def __post_init__(self) -> None:
        required = [lm for lm in FaceLandmark if lm not in FACE_IRIS_LANDMARKS]
        missing = [int(lm) for lm in required if int(lm) not in self.points]
        if missing:
            raise LandmarkShapeError(f"face frame is missing landmarks {missing}")

        stored: Dict[int, np.ndarray] = {}
        for lm in FaceLandmark:
            if int(lm) not in self.points:
                continue
            point = np.array(_landmark_to_xyz(self.points[int(lm)]), dtype=np.float64)
            if not np.all(np.isfinite(point)):
                raise LandmarkShapeError(f"face landmark {int(lm)} is not finite")
            point.flags.writeable = False
            stored[int(lm)] = point
        object.__setattr__(self, "points", stored)

    @classmethod
    def from_landmarks(cls, landmarks: Sequence[Any]) -> "FaceFrame":
        """468 点または 478 点の Face Mesh 列から FaceFrame を作る。"""
        count = len(landmarks)
        if count not in FACE_MESH_SIZES:
            raise LandmarkShapeError(
                f"face mesh must have {FACE_MESH_SIZES[0]} or {FACE_MESH_SIZES[1]} "
                f"landmarks, got {count}"
            )
        return cls(
            points={int(lm): landmarks[int(lm)] for lm in FaceLandmark if lm < count}
        )

    @property
    def has_iris(self) -> bool:
        return all(int(lm) in self.points for lm in FACE_IRIS_LANDMARKS)

    def __getitem__(self, slot: FaceLandmark) -> np.ndarray:
        return self.points[int(slot)]


def _is_empty(stream: Any) -> bool:
    if stream is None:
        return True
    if isinstance(stream, np.ndarray):
        return stream.size == 0
    return len(stream) == 0


def coerce_body_frame(stream: Any) -> Optional[BodyFrame]:
    """None / 空の入力は None (未検出) として扱い、それ以外は BodyFrame にする。"""
    if isinstance(stream, BodyFrame):
        return stream
    if _is_empty(stream):
        return None
    return BodyFrame.from_landmarks(stream)


def coerce_hand_frame(stream: Any) -> Optional[HandFrame]:
    if isinstance(stream, HandFrame):
        return stream
    if _is_empty(stream):
        return None
    return HandFrame.from_landmarks(stream)


def coerce_face_frame(stream: Any) -> Optional[FaceFrame]:
    if isinstance(stream, FaceFrame):
        return stream
    if _is_empty(stream):
        return None
    if isinstance(stream, Mapping):
        return FaceFrame(points=stream)
    return FaceFrame.from_landmarks(stream)


@dataclass(frozen=True)
class Rotation:
    """単位クォータニオン (x, y, z, w)。既定値は恒等回転。"""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def identity(cls) -> "Rotation":
        return cls()

    @classmethod
    def from_scipy(cls, rotation: ScipyRotation) -> "Rotation":
        x, y, z, w = rotation.as_quat()
        return cls(float(x), float(y), float(z), float(w))

    def to_scipy(self) -> ScipyRotation:
        return ScipyRotation.from_quat([self.x, self.y, self.z, self.w])

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z, self.w], dtype=np.float64)

    def norm(self) -> float:
        return float(np.linalg.norm(self.as_array()))

    def angle(self) -> float:
        """回転角 (ラジアン, 0..π)。"""
        w = min(1.0, abs(self.w) / (self.norm() or 1.0))
        return 2.0 * math.acos(w)

    def is_identity(self, tol: float = 1e-9) -> bool:
        return self.angle() <= tol

    def __str__(self) -> str:
        return f"Rotation(x={self.x:.4f}, y={self.y:.4f}, z={self.z:.4f}, w={self.w:.4f})"


@dataclass
class PoseSolverResult:
    """1 フレーム分の解の全体。

    関節回転はすべて親関節のローカル座標系での値。開き具合は 0 が閉、
    目は 1 が全開、口は 0.7 が上限。
    """

    upper_body: Rotation = field(default_factory=Rotation)
    lower_body: Rotation = field(default_factory=Rotation)
    neck: Rotation = field(default_factory=Rotation)
    left_hip: Rotation = field(default_factory=Rotation)
    right_hip: Rotation = field(default_factory=Rotation)
    left_foot: Rotation = field(default_factory=Rotation)
    right_foot: Rotation = field(default_factory=Rotation)
    left_upper_arm: Rotation = field(default_factory=Rotation)
    right_upper_arm: Rotation = field(default_factory=Rotation)
    left_lower_arm: Rotation = field(default_factory=Rotation)
    right_lower_arm: Rotation = field(default_factory=Rotation)
    left_wrist: Rotation = field(default_factory=Rotation)
    right_wrist: Rotation = field(default_factory=Rotation)
    left_thumb_cmc: Rotation = field(default_factory=Rotation)
    left_thumb_mcp: Rotation = field(default_factory=Rotation)
    left_index_finger_mcp: Rotation = field(default_factory=Rotation)
    left_index_finger_pip: Rotation = field(default_factory=Rotation)
    left_index_finger_dip: Rotation = field(default_factory=Rotation)
    left_middle_finger_mcp: Rotation = field(default_factory=Rotation)
    left_middle_finger_pip: Rotation = field(default_factory=Rotation)
    left_middle_finger_dip: Rotation = field(default_factory=Rotation)
    left_ring_finger_mcp: Rotation = field(default_factory=Rotation)
    left_ring_finger_pip: Rotation = field(default_factory=Rotation)
    left_ring_finger_dip: Rotation = field(default_factory=Rotation)
    left_pinky_finger_mcp: Rotation = field(default_factory=Rotation)
    left_pinky_finger_pip: Rotation = field(default_factory=Rotation)
    left_pinky_finger_dip: Rotation = field(default_factory=Rotation)
    right_thumb_cmc: Rotation = field(default_factory=Rotation)
    right_thumb_mcp: Rotation = field(default_factory=Rotation)
    right_index_finger_mcp: Rotation = field(default_factory=Rotation)
    right_index_finger_pip: Rotation = field(default_factory=Rotation)
    right_index_finger_dip: Rotation = field(default_factory=Rotation)
    right_middle_finger_mcp: Rotation = field(default_factory=Rotation)
    right_middle_finger_pip: Rotation = field(default_factory=Rotation)
    right_middle_finger_dip: Rotation = field(default_factory=Rotation)
    right_ring_finger_mcp: Rotation = field(default_factory=Rotation)
    right_ring_finger_pip: Rotation = field(default_factory=Rotation)
    right_ring_finger_dip: Rotation = field(default_factory=Rotation)
    right_pinky_finger_mcp: Rotation = field(default_factory=Rotation)
    right_pinky_finger_pip: Rotation = field(default_factory=Rotation)
    right_pinky_finger_dip: Rotation = field(default_factory=Rotation)
    left_eye_rotation: Rotation = field(default_factory=Rotation)
    right_eye_rotation: Rotation = field(default_factory=Rotation)
    left_eye_openness: float = 0.0
    right_eye_openness: float = 0.0
    mouth_openness: float = 0.0
    smile: float = 0.0

    def rotations(self) -> Dict[str, Rotation]:
        """回転を持つフィールドだけを宣言順に返す。"""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if isinstance(getattr(self, f.name), Rotation)
        }

    def as_dict(self) -> Dict[str, Any]:
        """JSON 出力向けに素の list / float へ変換する。"""
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Rotation):
                out[f.name] = [value.x, value.y, value.z, value.w]
            else:
                out[f.name] = float(value)
        return out

    def __str__(self) -> str:
        lines = [f"{name}: {rot}" for name, rot in self.rotations().items()]
        lines.append(
            f"eye_openness=({self.left_eye_openness:.3f}, {self.right_eye_openness:.3f}) "
            f"mouth_openness={self.mouth_openness:.3f} smile={self.smile:.3f}"
        )
        return "\n".join(lines)
