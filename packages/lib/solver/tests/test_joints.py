import numpy as np
import pytest

from lib_solver import JOINTS, DefaultDirection, HandLandmark, PoseSolverResult, Strategy, build_joint_table
from lib_solver.joints import DEFAULT_DIRECTIONS, JOINT_PARENTS


def test_parents_precede_children():
    seen = set()
    for joint in JOINTS:
        assert joint.parent is None or joint.parent in seen
        seen.add(joint.name)


def test_joint_names_match_result_fields():
    names = {joint.name for joint in JOINTS}
    fields = set(PoseSolverResult().rotations()) - {"left_eye_rotation", "right_eye_rotation"}
    assert names == fields
    assert len(names) == len(JOINTS)


def test_default_directions_are_exhaustive_unit_vectors():
    assert set(DEFAULT_DIRECTIONS) == set(DefaultDirection)
    for vector in DEFAULT_DIRECTIONS.values():
        assert np.linalg.norm(vector) == pytest.approx(1.0)
        assert not vector.flags.writeable


def test_left_and_right_defaults_mirror_each_other():
    for left, right in [
        (DefaultDirection.LEFT_ARM, DefaultDirection.RIGHT_ARM),
        (DefaultDirection.LEFT_WRIST, DefaultDirection.RIGHT_WRIST),
        (DefaultDirection.LEFT_THUMB, DefaultDirection.RIGHT_THUMB),
        (DefaultDirection.LEFT_FINGER, DefaultDirection.RIGHT_FINGER),
    ]:
        mirrored = DEFAULT_DIRECTIONS[left] * np.array([-1.0, 1.0, 1.0])
        assert mirrored == pytest.approx(DEFAULT_DIRECTIONS[right])


def test_strategies_of_special_joints():
    by_name = {joint.name: joint for joint in JOINTS}
    assert by_name["upper_body"].strategy is Strategy.UPPER_BODY
    assert by_name["neck"].strategy is Strategy.NECK
    assert by_name["left_hip"].strategy is Strategy.HIP
    assert by_name["right_foot"].strategy is Strategy.COPY
    assert JOINT_PARENTS["right_foot"] == "right_hip"
    assert JOINT_PARENTS["left_wrist"] == "left_lower_arm"
    assert JOINT_PARENTS["left_index_finger_dip"] == "left_index_finger_pip"


def test_wrist_target_is_configurable():
    default = {joint.name: joint for joint in build_joint_table()}
    pinky = {joint.name: joint for joint in build_joint_table(HandLandmark.PINKY_MCP)}
    assert default["left_wrist"].target == (HandLandmark.MIDDLE_MCP,)
    assert pinky["left_wrist"].target == (HandLandmark.PINKY_MCP,)
    assert pinky["right_wrist"].target == (HandLandmark.PINKY_MCP,)
