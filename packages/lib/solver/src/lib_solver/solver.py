"""Per-frame solver turning landmark frames into local joint rotations."""

from __future__ import annotations

import math
from dataclasses import fields
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np
from scipy.spatial.transform import Rotation as ScipyRotation

from .config import SolverConfig
from .data import (
    BodyFrame,
    FaceFrame,
    PoseSolverResult,
    Rotation,
    coerce_body_frame,
    coerce_face_frame,
    coerce_hand_frame,
)
from .face import estimate_face_expression
from .joints import JointName, JointSpec, Strategy, Stream, build_joint_table
from .rotation import (
    UNIT_X,
    UNIT_Y,
    angle_between,
    face_towards,
    from_axis_angle,
    rotation_between,
    rotation_between_scipy,
    segment_direction,
    to_local,
)

Frame = Any  # BodyFrame | HandFrame


def solve_joint_rotation(
    origin: np.ndarray,
    target: np.ndarray,
    parent_rotation: Rotation,
    default_direction: np.ndarray,
) -> Rotation:
    """Rotation taking `default_direction` onto the observed segment.

    The segment is y-flipped into avatar space and expressed in the parent's
    frame. Degenerate segments and anti-parallel directions give identity.
    """

    direction = segment_direction(origin, target)
    if direction is None:
        return Rotation.identity()
    return rotation_between(default_direction, to_local(direction, parent_rotation))


def solve_upper_body_rotation(
    right_shoulder: np.ndarray,
    left_shoulder: np.ndarray,
    default_direction: np.ndarray = UNIT_X,
) -> Rotation:
    """Shoulder-line rotation composed with the forward/backward lean.

    The lean is measured from the hip centre, which is the origin of the
    detector's world landmarks.
    """

    spine_dir = segment_direction(right_shoulder, left_shoulder)
    if spine_dir is None:
        spine = ScipyRotation.identity()
    else:
        spine = rotation_between_scipy(default_direction, spine_dir)

    shoulder_center = (np.asarray(left_shoulder) + np.asarray(right_shoulder)) / 2.0
    bend_dir = segment_direction(np.zeros(3), shoulder_center)
    if bend_dir is None:
        bend = ScipyRotation.identity()
    else:
        bend_angle = math.acos(max(-1.0, min(1.0, float(np.dot(bend_dir, UNIT_Y)))))
        bend = from_axis_angle(np.cross(UNIT_Y, bend_dir), bend_angle)

    return Rotation.from_scipy(spine * bend)


def solve_neck_rotation(
    shoulder_center: np.ndarray,
    nose: np.ndarray,
    upper_body_rotation: Rotation,
    tilt_offset: float = -math.pi / 9.0,
) -> Rotation:
    """Horizontal facing (face-towards) followed by a tilt about local X.

    Unlike the limb joints the neck direction is not y-flipped; the tilt angle
    takes the detector's downward y into account itself.
    """

    offset = np.asarray(nose, dtype=np.float64) - shoulder_center
    norm = float(np.linalg.norm(offset))
    if norm < 1e-8:
        return Rotation.identity()
    local = to_local(offset / norm, upper_body_rotation)

    forward = np.array([-local[0], 0.0, -local[2]], dtype=np.float64)
    horizontal_magnitude = float(np.linalg.norm(forward))
    horizontal = face_towards(forward, UNIT_Y)

    tilt_angle = math.atan2(-local[1], horizontal_magnitude) + tilt_offset
    tilt = from_axis_angle(UNIT_X, tilt_angle)
    return Rotation.from_scipy(horizontal * tilt)


def solve_hip_rotation(
    hip: np.ndarray,
    knee: np.ndarray,
    lower_body_rotation: Rotation,
    default_direction: np.ndarray,
    max_angle: float = math.pi / 2.0,
) -> Rotation:
    """Axis-angle leg swing away from `default_direction`, capped at `max_angle`."""

    direction = segment_direction(hip, knee)
    if direction is None:
        return Rotation.identity()
    local = to_local(direction, lower_body_rotation)

    angle = min(angle_between(default_direction, local), max_angle)
    return Rotation.from_scipy(from_axis_angle(np.cross(default_direction, local), angle))


class PoseSolver:
    """Stateless solver; one :meth:`solve` call per tracked frame.

    The joint table is built once from the config and never mutated, so a
    single instance can be shared between threads.
    """

    def __init__(self, config: Optional[SolverConfig] = None) -> None:
        self.config = config or SolverConfig()
        self.joints = build_joint_table(self.config.wrist_target)
        self._strategies: Mapping[
            Strategy, Callable[[JointSpec, Frame, Dict[JointName, Rotation]], Rotation]
        ] = {
            Strategy.ROTATION_BETWEEN: self._solve_rotation_between,
            Strategy.UPPER_BODY: self._solve_upper_body,
            Strategy.NECK: self._solve_neck,
            Strategy.HIP: self._solve_hip,
            Strategy.COPY: self._solve_copy,
        }

    def solve(
        self,
        body: Any,
        left_hand: Any = None,
        right_hand: Any = None,
        face: Any = None,
    ) -> PoseSolverResult:
        """Solve one frame.

        Each stream may be a frame object, a landmark sequence / array, or
        None / empty when the stream was not tracked. An empty body returns the
        all-identity default result.
        """

        body_frame = coerce_body_frame(body)
        if body_frame is None:
            return PoseSolverResult()

        frames: Dict[Stream, Optional[Frame]] = {
            Stream.BODY: body_frame,
            Stream.LEFT_HAND: coerce_hand_frame(left_hand),
            Stream.RIGHT_HAND: coerce_hand_frame(right_hand),
        }
        face_frame = coerce_face_frame(face)

        solved: Dict[JointName, Rotation] = {}
        for joint in self.joints:
            frame = frames[joint.stream]
            if frame is None:
                continue
            solved[joint.name] = self._strategies[joint.strategy](joint, frame, solved)

        values: Dict[str, Any] = dict(solved)
        if face_frame is not None:
            values.update(self._solve_face(face_frame))
        return PoseSolverResult(**values)

    def _parent(self, joint: JointSpec, solved: Dict[JointName, Rotation]) -> Rotation:
        if joint.parent is None:
            return Rotation.identity()
        return solved[joint.parent]

    def _solve_rotation_between(
        self, joint: JointSpec, frame: Frame, solved: Dict[JointName, Rotation]
    ) -> Rotation:
        return solve_joint_rotation(
            frame.midpoint(*joint.origin),
            frame.midpoint(*joint.target),
            self._parent(joint, solved),
            joint.default_direction,
        )

    def _solve_upper_body(
        self, joint: JointSpec, frame: BodyFrame, solved: Dict[JointName, Rotation]
    ) -> Rotation:
        return solve_upper_body_rotation(
            frame.midpoint(*joint.origin),
            frame.midpoint(*joint.target),
            joint.default_direction,
        )

    def _solve_neck(
        self, joint: JointSpec, frame: BodyFrame, solved: Dict[JointName, Rotation]
    ) -> Rotation:
        return solve_neck_rotation(
            frame.midpoint(*joint.origin),
            frame.midpoint(*joint.target),
            self._parent(joint, solved),
            self.config.neck_tilt_offset,
        )

    def _solve_hip(
        self, joint: JointSpec, frame: BodyFrame, solved: Dict[JointName, Rotation]
    ) -> Rotation:
        return solve_hip_rotation(
            frame.midpoint(*joint.origin),
            frame.midpoint(*joint.target),
            self._parent(joint, solved),
            joint.default_direction,
            self.config.hip_max_angle,
        )

    def _solve_copy(
        self, joint: JointSpec, frame: Frame, solved: Dict[JointName, Rotation]
    ) -> Rotation:
        return self._parent(joint, solved)

    def _solve_face(self, face: FaceFrame) -> Dict[str, Any]:
        expression = estimate_face_expression(face, self.config)
        return {f.name: getattr(expression, f.name) for f in fields(expression)}


__all__ = [
    "PoseSolver",
    "solve_hip_rotation",
    "solve_joint_rotation",
    "solve_neck_rotation",
    "solve_upper_body_rotation",
]
