from .config import SolverConfig, load_config
from .data import (
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
from .face import ExpressionWeights, expression_weights
from .joints import JOINTS, DefaultDirection, JointSpec, Strategy, build_joint_table
from .rig import BoneSegment, bone_segments, compose_world_rotations
from .rotation import rotation_between
from .solver import PoseSolver

__all__ = [
    "BodyFrame",
    "HandFrame",
    "FaceFrame",
    "BodyLandmark",
    "HandLandmark",
    "FaceLandmark",
    "LandmarkShapeError",
    "Rotation",
    "PoseSolverResult",
    "PoseSolver",
    "SolverConfig",
    "load_config",
    "rotation_between",
    "JOINTS",
    "JointSpec",
    "Strategy",
    "DefaultDirection",
    "build_joint_table",
    "ExpressionWeights",
    "expression_weights",
    "BoneSegment",
    "bone_segments",
    "compose_world_rotations",
]
