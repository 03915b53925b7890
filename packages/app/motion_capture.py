"""
カメラ映像から MediaPipe Holistic でランドマークを推定し、
アバター用の関節回転を毎フレーム解いてカメラ映像上に表情の値を表示するアプリ。

--output を指定すると 1 フレーム 1 行の JSON (JSON Lines) で回転を書き出す。
"""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import ExitStack
from typing import Optional

import cv2
from lib_solver import PoseSolver, expression_weights, load_config
from lib_solver.detect import HolisticEstimator
from lib_solver.util_2d import draw_expressions_on_frame, draw_keypoints_on_frame


def run(
    camera_index: int = 0,
    model_asset_path: str = "holistic_landmarker.task",
    config_path: Optional[str] = None,
    output_path: Optional[str] = None,
    debug: bool = False,
) -> int:
    """メインのランナー関数。検出・解・描画はすべて `lib_solver` を利用する。"""
    try:
        solver = PoseSolver(load_config(config_path))
    except ValueError as e:
        print(f"設定ファイルが不正です: {e}", file=sys.stderr)
        return 2

    cap = cv2.VideoCapture(camera_index)
    if not cap.isOpened():
        print(f"カメラを開けませんでした (index={camera_index})", file=sys.stderr)
        return 3

    frame_index = 0
    try:
        with ExitStack() as stack:
            output = (
                stack.enter_context(open(output_path, "w", encoding="utf-8"))
                if output_path
                else None
            )
            estimator = stack.enter_context(
                HolisticEstimator(model_asset_path=model_asset_path)
            )
            while True:
                ret, frame = cap.read()
                if not ret:
                    print("フレームを取得できませんでした", file=sys.stderr)
                    break

                data = estimator.process_frame(frame)
                result = solver.solve(
                    data.body, data.left_hand, data.right_hand, data.face
                )
                if debug:
                    weights = expression_weights(result)
                    print(
                        f"[{frame_index}] body={data.body is not None} "
                        f"hands=({data.left_hand is not None}, {data.right_hand is not None}) "
                        f"face={data.face is not None} blink={weights.blink:.2f} "
                        f"mouth={weights.mouth_open:.2f}"
                    )
                if output is not None and data.body is not None:
                    record = {"frame": frame_index, **result.as_dict()}
                    output.write(json.dumps(record) + "\n")

                draw_keypoints_on_frame(frame, data)
                flipped = cv2.flip(frame, 1)
                draw_expressions_on_frame(flipped, result)
                cv2.imshow("Motion Capture (mirrored)", flipped)

                frame_index += 1
                if cv2.waitKey(5) & 0xFF == ord("q"):
                    break
    finally:
        cap.release()
        cv2.destroyAllWindows()

    return 0


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--camera", type=int, default=0, help="カメラ index (default: 0)")
    parser.add_argument(
        "--model",
        default="holistic_landmarker.task",
        help="MediaPipe holistic landmarker のモデルファイル",
    )
    parser.add_argument("--config", default=None, help="ソルバ設定の JSON ファイル")
    parser.add_argument("--output", default=None, help="JSON Lines の出力先")
    parser.add_argument("--debug", action="store_true", help="フレームごとの状態を表示")
    return parser


if __name__ == "__main__":
    args = build_argument_parser().parse_args()
    sys.exit(
        run(
            camera_index=args.camera,
            model_asset_path=args.model,
            config_path=args.config,
            output_path=args.output,
            debug=args.debug,
        )
    )
