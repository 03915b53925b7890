import math
from types import SimpleNamespace

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as ScipyRotation

from conftest import (
    assert_same_rotation,
    make_body,
    make_hand,
    mirror_body,
    mirror_hand,
)
from lib_solver import BodyLandmark, HandLandmark, PoseSolver, PoseSolverResult, Rotation, SolverConfig
from lib_solver.solver import solve_hip_rotation, solve_neck_rotation

HAND_PREFIXES = ("wrist", "thumb", "index_finger", "middle_finger", "ring_finger", "pinky_finger")


def _is_hand_joint(name: str, side: str) -> bool:
    return name.startswith(side + "_") and name[len(side) + 1 :].startswith(HAND_PREFIXES)


def _t_pose(overrides=None):
    base = {
        BodyLandmark.LEFT_SHOULDER: (0.2, -0.5, 0.0),
        BodyLandmark.RIGHT_SHOULDER: (-0.2, -0.5, 0.0),
        BodyLandmark.LEFT_HIP: (0.1, 0.0, 0.0),
        BodyLandmark.RIGHT_HIP: (-0.1, 0.0, 0.0),
        BodyLandmark.LEFT_KNEE: (0.1, 0.4, 0.0),
        BodyLandmark.RIGHT_KNEE: (-0.1, 0.4, 0.0),
    }
    base.update(overrides or {})
    return make_body(base)


@pytest.mark.parametrize("empty", [None, [], np.zeros((0, 3))])
def test_missing_body_returns_default_result(empty, hand):
    assert PoseSolver().solve(empty, hand, hand) == PoseSolverResult()


def test_missing_hands_stay_identity(body, hand):
    result = PoseSolver().solve(body, None, hand)
    rotations = result.rotations()

    for name, rot in rotations.items():
        if _is_hand_joint(name, "left"):
            assert rot == Rotation(), name
    assert not result.right_wrist.is_identity()
    assert not result.right_index_finger_mcp.is_identity()
    assert not result.upper_body.is_identity()
    assert not result.left_upper_arm.is_identity()


def test_missing_face_keeps_expression_defaults(body):
    result = PoseSolver().solve(body)
    assert result.left_eye_rotation == Rotation()
    assert (result.left_eye_openness, result.mouth_openness, result.smile) == (0.0, 0.0, 0.0)


def test_all_rotations_are_unit_quaternions(body, hand, face):
    result = PoseSolver().solve(body, hand, hand, face)
    for name, rot in result.rotations().items():
        assert rot.norm() == pytest.approx(1.0, abs=1e-9), name


def test_solve_is_pure(body, hand, face):
    solver = PoseSolver()
    before = body.copy()
    first = solver.solve(body, hand, hand, face)
    second = solver.solve(body, hand, hand, face)
    assert first == second
    assert np.array_equal(body, before)


def test_accepts_mediapipe_like_landmarks(body, hand):
    def to_landmarks(points):
        return [SimpleNamespace(x=x, y=y, z=z) for x, y, z in points]

    solver = PoseSolver()
    assert solver.solve(to_landmarks(body), to_landmarks(hand)) == solver.solve(body, hand)


def test_t_pose_arms_are_identity():
    body = _t_pose(
        {
            BodyLandmark.LEFT_ELBOW: (0.4, -0.3, 0.0),
            BodyLandmark.RIGHT_ELBOW: (-0.4, -0.3, 0.0),
        }
    )
    result = PoseSolver().solve(body)
    assert result.upper_body == Rotation()
    assert result.lower_body == Rotation()
    assert result.left_upper_arm.is_identity(1e-7)
    assert result.right_upper_arm.is_identity(1e-7)
    assert result.left_hip == Rotation()
    assert result.left_foot == result.left_hip


def test_horizontal_arm_rotates_45_degrees_about_z():
    body = _t_pose({BodyLandmark.LEFT_ELBOW: (0.45, -0.5, 0.0)})
    result = PoseSolver().solve(body)
    assert_same_rotation(result.left_upper_arm, [0.0, 0.0, 0.38268343, 0.92387953])


def test_hip_swing_is_clamped_to_quarter_turn():
    body = _t_pose({BodyLandmark.LEFT_KNEE: (0.4, -0.1, 0.0)})
    result = PoseSolver().solve(body)
    s = math.sqrt(0.5)
    assert_same_rotation(result.left_hip, [0.0, 0.0, s, s])
    assert result.left_hip.angle() == pytest.approx(math.pi / 2)
    assert result.left_foot == result.left_hip
    assert result.right_hip == Rotation()


def test_hip_clamp_follows_config():
    rot = solve_hip_rotation(
        np.array([0.1, 0.0, 0.0]),
        np.array([0.4, -0.1, 0.0]),
        Rotation(),
        np.array([0.0, -1.0, 0.0]),
        max_angle=math.pi / 4,
    )
    assert rot.angle() == pytest.approx(math.pi / 4)


def test_neck_tilt_uses_horizontal_magnitude():
    body = _t_pose({BodyLandmark.NOSE: (0.0, -0.7, -0.1)})
    result = PoseSolver().solve(body)
    angle = math.atan2(2.0, 1.0) - math.pi / 9
    expected = ScipyRotation.from_rotvec([angle, 0.0, 0.0]).as_quat()
    assert_same_rotation(result.neck, expected)


def test_neck_degenerate_offset_is_identity():
    center = np.array([0.0, -0.5, 0.0])
    assert solve_neck_rotation(center, center.copy(), Rotation()) == Rotation()


def test_mirrored_input_gives_mirrored_rotations(body, hand):
    solver = PoseSolver()
    original = solver.solve(body, hand, make_hand() * np.array([1.0, 1.1, 0.9]))
    mirrored = solver.solve(
        mirror_body(body),
        mirror_hand(make_hand() * np.array([1.0, 1.1, 0.9])),
        mirror_hand(hand),
    )

    swapped = {"left": "right", "right": "left"}
    for name, rot in mirrored.rotations().items():
        side = name.split("_", 1)[0]
        counterpart = swapped[side] + name[len(side):] if side in swapped else name
        source = original.rotations()[counterpart]
        assert_same_rotation(rot, [source.x, -source.y, -source.z, source.w])


def test_wrist_target_changes_wrist_rotation(body, hand):
    middle = PoseSolver().solve(body, hand)
    pinky = PoseSolver(SolverConfig(wrist_target=HandLandmark.PINKY_MCP)).solve(body, hand)
    assert abs(float(np.dot(middle.left_wrist.as_array(), pinky.left_wrist.as_array()))) < 0.9999
