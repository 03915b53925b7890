"""ランドマーク検出 (MediaPipe Holistic) とソルバ入力への変換"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from mediapipe import Image, ImageFormat
from mediapipe.tasks.python.core.base_options import BaseOptions
from mediapipe.tasks.python.vision.core.vision_task_running_mode import (
    VisionTaskRunningMode as RunningMode,
)
from mediapipe.tasks.python.vision.holistic_landmarker import (
    HolisticLandmarker,
    HolisticLandmarkerOptions,
    HolisticLandmarkerResult,
)

from .data import (
    BODY_LANDMARK_COUNT,
    BodyFrame,
    FaceFrame,
    HandFrame,
    coerce_body_frame,
    coerce_face_frame,
    coerce_hand_frame,
)


@dataclass
class HolisticData:
    """1 フレーム分の検出結果。

    attributes:
            body: 全身のワールド座標 (腰の中心が原点, y 軸下向き)。未検出なら None
            left_hand / right_hand: 手のワールド座標。未検出なら None
            face: Face Mesh (正規化画像座標)。未検出なら None
            body_keypoints: numpy.ndarray (33, 3) 画像座標 (ピクセル) の全身。描画用
            image_size: Tuple[int, int] 元の画像サイズ (width, height)
    """

    body: Optional[BodyFrame]
    left_hand: Optional[HandFrame]
    right_hand: Optional[HandFrame]
    face: Optional[FaceFrame]
    body_keypoints: np.ndarray
    image_size: Tuple[int, int]

    @classmethod
    def empty(cls, image_size: Tuple[int, int] = (0, 0)) -> "HolisticData":
        return cls(
            body=None,
            left_hand=None,
            right_hand=None,
            face=None,
            body_keypoints=np.zeros((0, 3)),
            image_size=image_size,
        )


def _first_person(landmarks: Any) -> List[Any]:
    """結果が人物ごとのリストで入れ子になっている場合は先頭の人物を取り出す。"""
    if not landmarks:
        return []
    first = landmarks[0]
    if isinstance(first, (list, tuple)):
        return list(first)
    return list(landmarks)


def _landmarks_to_keypoints(
    landmarks: Sequence[Any], image_size: Tuple[int, int]
) -> np.ndarray:
    """正規化座標の landmarks を画像座標 (ピクセル) の (N,3) 配列に変換する内部ヘルパー。

    image_size: (width, height)
    """
    width, height = image_size
    if len(landmarks) != BODY_LANDMARK_COUNT:
        return np.zeros((0, 3))
    return np.array(
        [
            (
                float(lm.x) * width,
                float(lm.y) * height,
                float(lm.z) * width,  # MediaPipe は z を正規化 x スケールで返す
            )
            for lm in landmarks
        ],
        dtype=float,
    )


def result_to_holistic_data(
    results: "HolisticLandmarkerResult", image_size: Tuple[int, int]
) -> HolisticData:
    """HolisticLandmarkerResult を HolisticData に変換する。"""
    pose_image = _first_person(getattr(results, "pose_landmarks", None))
    return HolisticData(
        body=coerce_body_frame(_first_person(getattr(results, "pose_world_landmarks", None))),
        left_hand=coerce_hand_frame(
            _first_person(getattr(results, "left_hand_world_landmarks", None))
        ),
        right_hand=coerce_hand_frame(
            _first_person(getattr(results, "right_hand_world_landmarks", None))
        ),
        face=coerce_face_frame(_first_person(getattr(results, "face_landmarks", None))),
        body_keypoints=_landmarks_to_keypoints(pose_image, image_size),
        image_size=image_size,
    )


def load_image_landmarks(
    image_path: str, model_asset_path: str = "holistic_landmarker.task"
) -> Tuple[HolisticData, np.ndarray]:
    """画像ファイルから MediaPipe を用いてランドマークを推定する。

    返り値: (HolisticData, 読み込んだ BGR 画像)
    """
    img = cv2.imread(image_path)
    if img is None:
        raise FileNotFoundError(f"画像を開けませんでした: {image_path}")

    with HolisticEstimator(model_asset_path=model_asset_path) as estimator:
        return estimator.process_frame(img), img


class HolisticEstimator:
    """長寿命の MediaPipe Holistic ラッパー。

    with 文で使用でき、`process_frame(frame)` を呼んで各フレームごとに
    `HolisticData` を返します。デモはこれを使えば mediapipe を直接 import する必要がなくなります。
    """

    def __init__(
        self,
        model_asset_path: str = "holistic_landmarker.task",
        min_pose_detection_confidence: float = 0.5,
        min_pose_landmarks_confidence: float = 0.5,
        min_hand_landmarks_confidence: float = 0.5,
        min_face_landmarks_confidence: float = 0.5,
    ):
        base_options = BaseOptions(model_asset_path=model_asset_path)
        options = HolisticLandmarkerOptions(
            base_options=base_options,
            running_mode=RunningMode.IMAGE,
            min_pose_detection_confidence=min_pose_detection_confidence,
            min_pose_landmarks_confidence=min_pose_landmarks_confidence,
            min_hand_landmarks_confidence=min_hand_landmarks_confidence,
            min_face_landmarks_confidence=min_face_landmarks_confidence,
        )
        self._detector = HolisticLandmarker.create_from_options(options)

    def process_frame(self, frame: np.ndarray) -> HolisticData:
        """BGR フレームを入力に取り、HolisticData を返す（未検出のストリームは None）。"""
        if frame is None:
            return HolisticData.empty()

        height, width = frame.shape[:2]
        image_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image_rgb.flags.writeable = False
        mp_image = Image(image_format=ImageFormat.SRGB, data=image_rgb)
        results = self._detector.detect(mp_image)
        image_rgb.flags.writeable = True
        return result_to_holistic_data(results, (width, height))

    def close(self) -> None:
        try:
            self._detector.close()
        except Exception:
            pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass


__all__ = [
    "HolisticData",
    "HolisticEstimator",
    "load_image_landmarks",
    "result_to_holistic_data",
]
