"""カメラの画像からランドマークを推定し、解いた関節回転でリグを 3D 表示するデモ。"""

from __future__ import annotations

import argparse
from typing import Optional

import cv2
import pyglet
from lib_solver import PoseSolver, load_config
from lib_solver.detect import HolisticData, HolisticEstimator
from lib_solver.util_2d import draw_expressions_on_frame, draw_keypoints_on_frame
from lib_solver.util_3d import RigVisuals, create_rig_3d_batch, dispose_rig_visuals
from pyglet import clock, graphics, window
from pyglet.math import Mat4, Vec3
from pyglet.window import key


class Rig3DDemo:
    """Real-time solver that renders the posed reference rig with pyglet."""

    def __init__(
        self,
        *,
        camera_index: int = 0,
        update_rate: float = 30.0,
        model_asset_path: str = "holistic_landmarker.task",
        config_path: Optional[str] = None,
        debug: bool = False,
    ) -> None:
        if update_rate <= 0:
            raise ValueError("update_rate must be positive")

        self._capture = cv2.VideoCapture(camera_index)
        if not self._capture.isOpened():
            raise RuntimeError(f"Failed to open camera index {camera_index}")

        self._cv_window_name = "Landmarks 2D View"
        self._cv_window_created = False
        try:
            cv2.namedWindow(self._cv_window_name, cv2.WINDOW_NORMAL)
            self._cv_window_created = True
        except cv2.error:
            # 2D 表示用のウィンドウを作れない環境では無効化
            self._cv_window_created = False

        self._estimator = HolisticEstimator(model_asset_path=model_asset_path)
        self._solver = PoseSolver(load_config(config_path))

        self.window = window.Window(
            width=960,
            height=720,
            caption="Rig 3D Demo",
            resizable=True,
        )
        self.window.projection = Mat4.perspective_projection(
            fov=60.0,
            aspect=self.window.width / self.window.height,
            z_near=0.1,
            z_far=100.0,
        )
        self.window.view = Mat4.look_at(
            Vec3(0.0, 0.4, 3.0),
            Vec3(0.0, 0.3, 0.0),
            Vec3(0.0, 1.0, 0.0),
        )

        self.batch = graphics.Batch()
        self.rig_visuals: Optional[RigVisuals] = None
        self._update_rate = update_rate
        self._closed = False
        self._debug = debug

        self._register_handlers()
        clock.schedule_interval(self.update, 1.0 / self._update_rate)

    def _register_handlers(self) -> None:
        @self.window.event
        def on_draw() -> None:
            self.window.clear()
            if self.rig_visuals:
                self.rig_visuals.batch.draw()

        @self.window.event
        def on_key_press(symbol: int, modifiers: int) -> None:
            if symbol in (key.ESCAPE, key.Q):
                pyglet.app.exit()

    def update(self, dt: float) -> None:
        if not self._capture.isOpened():
            pyglet.app.exit()
            return

        ok, frame = self._capture.read()
        if not ok:
            return

        data = self._estimator.process_frame(frame)
        result = self._solver.solve(data.body, data.left_hand, data.right_hand, data.face)
        if self._cv_window_created:
            self._render_on_frame(frame, data, result)
        if self._debug:
            print(result)

        if self.rig_visuals:
            dispose_rig_visuals(self.rig_visuals)
            self.rig_visuals = None
        if data.body is None:
            return

        self.rig_visuals = create_rig_3d_batch(
            result,
            batch=self.batch,
            translate=(0.0, -0.2, 0.0),
            scale=2.0,
        )

    def _render_on_frame(self, frame, data: HolisticData, result) -> None:
        display_frame = frame.copy()
        draw_keypoints_on_frame(display_frame, data)
        draw_expressions_on_frame(display_frame, result)
        try:
            cv2.imshow(self._cv_window_name, display_frame)
        except cv2.error:
            self._cv_window_created = False
            return
        key_code = cv2.waitKey(1) & 0xFF
        if key_code in (27, ord("q"), ord("Q")):
            pyglet.app.exit()

    def close(self) -> None:
        if self._closed:
            return

        clock.unschedule(self.update)
        if self.rig_visuals:
            dispose_rig_visuals(self.rig_visuals)
            self.rig_visuals = None

        if self._capture.isOpened():
            self._capture.release()

        if self._cv_window_created:
            try:
                cv2.destroyWindow(self._cv_window_name)
            except cv2.error:
                pass
            self._cv_window_created = False

        self._estimator.close()
        self._closed = True

    def run(self) -> None:
        try:
            pyglet.app.run()
        finally:
            self.close()


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--camera",
        type=int,
        default=0,
        help="Index passed to OpenCV's VideoCapture (default: 0).",
    )
    parser.add_argument(
        "--update-rate",
        type=float,
        default=30.0,
        help="Scheduler frequency in Hz for capturing frames (default: 30).",
    )
    parser.add_argument(
        "--model",
        default="holistic_landmarker.task",
        help="Path to the MediaPipe holistic landmarker model.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional JSON file overriding solver constants.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print every solved frame.",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    demo = Rig3DDemo(
        camera_index=args.camera,
        update_rate=args.update_rate,
        model_asset_path=args.model,
        config_path=args.config,
        debug=args.debug,
    )
    demo.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
