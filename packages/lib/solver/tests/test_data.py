from types import SimpleNamespace

import numpy as np
import pytest

from conftest import make_face
from lib_solver import (
    BodyFrame,
    BodyLandmark,
    FaceFrame,
    FaceLandmark,
    HandFrame,
    HandLandmark,
    LandmarkShapeError,
    PoseSolverResult,
    Rotation,
)
from lib_solver.data import coerce_body_frame, coerce_face_frame, coerce_hand_frame


def test_landmark_shape_error_is_value_error():
    assert issubclass(LandmarkShapeError, ValueError)


@pytest.mark.parametrize("shape", [(32, 3), (34, 3), (33, 2), (33,)])
def test_body_frame_rejects_wrong_shape(shape):
    with pytest.raises(LandmarkShapeError):
        BodyFrame(np.zeros(shape))


def test_hand_frame_rejects_wrong_length():
    with pytest.raises(LandmarkShapeError):
        HandFrame(np.zeros((20, 3)))


def test_frame_rejects_non_finite(body):
    body[BodyLandmark.NOSE, 1] = np.nan
    with pytest.raises(LandmarkShapeError):
        BodyFrame(body)


def test_body_frame_is_read_only_copy(body):
    frame = BodyFrame(body)
    body[BodyLandmark.NOSE] = (9.0, 9.0, 9.0)
    assert frame[BodyLandmark.NOSE] == pytest.approx([0.02, -0.62, -0.1])
    with pytest.raises(ValueError):
        frame.points[0, 0] = 1.0


def test_from_landmarks_accepts_mediapipe_like_objects(body):
    landmarks = [SimpleNamespace(x=x, y=y, z=z, visibility=1.0) for x, y, z in body]
    frame = BodyFrame.from_landmarks(landmarks)
    assert np.array_equal(frame.points, body)


def test_midpoint_averages_slots(body):
    frame = BodyFrame(body)
    center = frame.midpoint(BodyLandmark.LEFT_HIP, BodyLandmark.RIGHT_HIP)
    assert center == pytest.approx([0.0, 0.0, 0.0])


def test_hand_frame_indexing(hand):
    frame = HandFrame(hand)
    assert frame[HandLandmark.WRIST] == pytest.approx([0.0, 0.0, 0.0])
    assert frame[HandLandmark.MIDDLE_MCP] == pytest.approx([0.0, -0.03, -0.006])


def test_face_frame_requires_non_iris_landmarks():
    points = make_face()
    del points[int(FaceLandmark.UPPER_LIP)]
    with pytest.raises(LandmarkShapeError):
        FaceFrame(points)


def test_face_frame_iris_detection():
    assert not FaceFrame(make_face()).has_iris
    assert FaceFrame(make_face(iris_offset=0.0)).has_iris


@pytest.mark.parametrize("size, has_iris", [(468, False), (478, True)])
def test_face_frame_from_full_mesh(size, has_iris):
    mesh = [(0.0, 0.0, 0.0)] * size
    frame = FaceFrame.from_landmarks(mesh)
    assert frame.has_iris is has_iris


def test_face_frame_from_landmarks_rejects_other_sizes():
    with pytest.raises(LandmarkShapeError):
        FaceFrame.from_landmarks([(0.0, 0.0, 0.0)] * 100)


@pytest.mark.parametrize("empty", [None, [], (), np.zeros((0, 3))])
def test_coerce_treats_empty_input_as_absent(empty):
    assert coerce_body_frame(empty) is None
    assert coerce_hand_frame(empty) is None
    assert coerce_face_frame(empty) is None


def test_coerce_passes_frames_through(body):
    frame = BodyFrame(body)
    assert coerce_body_frame(frame) is frame
    assert isinstance(coerce_face_frame(make_face()), FaceFrame)


def test_result_defaults_and_export():
    result = PoseSolverResult()
    rotations = result.rotations()
    assert all(rot == Rotation() for rot in rotations.values())
    assert "left_eye_rotation" in rotations

    exported = result.as_dict()
    assert exported["neck"] == [0.0, 0.0, 0.0, 1.0]
    assert exported["mouth_openness"] == 0.0
    assert set(exported) == set(rotations) | {
        "left_eye_openness",
        "right_eye_openness",
        "mouth_openness",
        "smile",
    }


def test_short_landmark_sequence_raises_shape_error():
    with pytest.raises(LandmarkShapeError):
        BodyFrame.from_landmarks([(0.0, 0.0)] * 33)
    with pytest.raises(LandmarkShapeError):
        HandFrame([[0.0, 0.0]] * 21)

    points = make_face()
    points[int(FaceLandmark.UPPER_LIP)] = (0.5, 0.7)
    with pytest.raises(LandmarkShapeError):
        FaceFrame(points)
