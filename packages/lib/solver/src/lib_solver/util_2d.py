from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .data import BODY_CONNECTIONS, PoseSolverResult
from .detect import HolisticData


def draw_keypoints_on_frame(frame: np.ndarray, data: HolisticData) -> None:
    """フレーム上に全身のキーポイントを描画する補助関数。

    引数:
            frame: BGR 画像（描画はこの配列に行われる）
            data: HolisticData インスタンス

    返り値: なし（frame がインプレースで変更される）
    """
    if data is None or data.body_keypoints.shape[0] == 0:
        return

    keypoints = data.body_keypoints
    for k1, k2 in BODY_CONNECTIONS:
        x1, y1, _z1 = keypoints[k1]
        x2, y2, _z2 = keypoints[k2]
        cv2.line(frame, (int(x1), int(y1)), (int(x2), int(y2)), (255, 0, 0), 2)
    for x, y, _z in keypoints:
        cv2.circle(frame, (int(x), int(y)), 5, (0, 255, 0), -1)


def _openness_color(value: float) -> Tuple[int, int, int]:
    v = max(0.0, min(1.0, value))
    return (0, int(v * 255), int((1.0 - v) * 255))


def draw_expressions_on_frame(
    frame: np.ndarray, result: PoseSolverResult, location: Tuple[int, int] = (10, 40)
) -> None:
    """フレーム上に目と口の開き具合を描画する補助関数。

    引数:
            frame: BGR 画像（描画はこの配列に行われる）
            result: PoseSolverResult インスタンス
            location: 描画開始座標 (x, y)

    返り値: なし（frame がインプレースで変更される）
    """
    x, y = location
    rows = (
        ("Eye L", result.left_eye_openness),
        ("Eye R", result.right_eye_openness),
        ("Mouth", result.mouth_openness),
        ("Smile", result.smile),
    )
    for i, (label, value) in enumerate(rows):
        cv2.putText(
            frame,
            f"{label}: {value:.2f}",
            (x, y + i * 40),
            cv2.FONT_HERSHEY_SIMPLEX,
            1.0,
            _openness_color(value),
            2,
            cv2.LINE_AA,
        )
