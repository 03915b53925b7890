"""
画像ファイルからランドマークを推定し、関節回転を解いて JSON で書き出すデモ。
"""

from __future__ import annotations

import json
import sys

import cv2
from lib_solver import PoseSolver
from lib_solver.detect import load_image_landmarks
from lib_solver.util_2d import draw_expressions_on_frame, draw_keypoints_on_frame


def run(
    image_path: str = "image.png",
    output_path: str = "pose_rotations.json",
) -> int:
    try:
        data, image = load_image_landmarks(image_path)
    except Exception as e:
        print(f"画像の読み込みに失敗しました: {e}", file=sys.stderr)
        return 2

    if data.body is None:
        print("全身のランドマークを検出できませんでした", file=sys.stderr)
        return 3

    result = PoseSolver().solve(data.body, data.left_hand, data.right_hand, data.face)
    print(result)
    # 関節回転を外部ファイルに書き出す
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result.as_dict(), f, indent=2)

    try:
        while True:
            draw_keypoints_on_frame(image, data)
            draw_expressions_on_frame(image, result)
            cv2.imshow("Solved Pose", image)

            if cv2.waitKey(5) & 0xFF == ord("q"):
                break
    except KeyboardInterrupt:
        pass
    finally:
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    path = "image.png"
    output = "pose_rotations.json"

    if len(sys.argv) > 1:
        path = sys.argv[1]

    if len(sys.argv) > 2:
        output = sys.argv[2]

    sys.exit(run(path, output))
