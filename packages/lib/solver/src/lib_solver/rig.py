"""Consumer-side helpers that pose a reference skeleton with a solver result.

The solver only emits parent-relative rotations. These helpers accumulate them
along the joint hierarchy and lay out bone segments for a debug preview.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import numpy as np

from .data import PoseSolverResult, Rotation
from .joints import DEFAULT_DIRECTIONS, JOINTS, DefaultDirection, JointName, JointSpec
from .rotation import compose

# 基準骨格の骨の長さ (肩幅を 0.4 とした相対値)
BONE_LENGTHS: Mapping[str, float] = {
    "upper_body": 0.2,
    "lower_body": 0.1,
    "neck": 0.15,
    "upper_arm": 0.28,
    "lower_arm": 0.26,
    "hip": 0.4,
    "foot": 0.08,
    "wrist": 0.08,
    "thumb": 0.035,
    "finger": 0.03,
}

# Segment start of chain roots, in the parent's frame relative to the parent's start.
_ANCHORS: Mapping[str, np.ndarray] = {
    "neck": np.array([0.0, 0.45, 0.0]),
    "left_upper_arm": np.array([0.2, 0.4, 0.0]),
    "right_upper_arm": np.array([-0.2, 0.4, 0.0]),
    "left_hip": np.array([0.1, 0.0, 0.0]),
    "right_hip": np.array([-0.1, 0.0, 0.0]),
}


@dataclass(frozen=True, eq=False)
class BoneSegment:
    name: JointName
    start: np.ndarray
    end: np.ndarray


def compose_world_rotations(
    result: PoseSolverResult, joints: Optional[tuple[JointSpec, ...]] = None
) -> Dict[JointName, Rotation]:
    """World orientation of every joint: parent world * local."""

    local = result.rotations()
    world: Dict[JointName, Rotation] = {}
    for joint in joints or JOINTS:
        rotation = local[joint.name]
        if joint.parent is not None:
            rotation = compose(world[joint.parent], rotation)
        world[joint.name] = rotation
    return world


def _bone_length(name: JointName) -> float:
    for key in ("upper_arm", "lower_arm", "thumb", "finger", "hip", "foot", "wrist"):
        if key in name:
            return BONE_LENGTHS[key]
    return BONE_LENGTHS[name]


def _bone_direction(joint: JointSpec) -> np.ndarray:
    if joint.default is not None:
        return DEFAULT_DIRECTIONS[joint.default]
    if joint.name == "neck":
        return np.array([0.0, 1.0, 0.0])
    return DEFAULT_DIRECTIONS[DefaultDirection.LEG]


def bone_segments(
    result: PoseSolverResult, joints: Optional[tuple[JointSpec, ...]] = None
) -> List[BoneSegment]:
    """Lay out the reference skeleton posed by `result`, rooted at the origin.

    Each joint's bone points along its bind-pose direction rotated by its world
    orientation; the upper body's bone runs up the spine. Chain children start
    where their parent's bone ends.
    """

    table = joints or JOINTS
    world = {name: rot.to_scipy() for name, rot in compose_world_rotations(result, table).items()}
    starts: Dict[JointName, np.ndarray] = {}
    ends: Dict[JointName, np.ndarray] = {}
    segments: List[BoneSegment] = []

    for joint in table:
        if joint.parent is None:
            start = np.zeros(3)
        elif joint.name in _ANCHORS:
            parent_world = world[joint.parent]
            start = starts[joint.parent] + parent_world.apply(np.array(_ANCHORS[joint.name]))
        else:
            start = ends[joint.parent]

        if joint.name == "upper_body":
            direction = np.array([0.0, 1.0, 0.0])
            length = BONE_LENGTHS["upper_body"] * 2.0
        else:
            direction = _bone_direction(joint)
            length = _bone_length(joint.name)
        # the direction table is read-only; scipy needs a writable buffer
        end = start + world[joint.name].apply(np.array(direction, dtype=np.float64)) * length

        starts[joint.name] = start
        ends[joint.name] = end
        segments.append(BoneSegment(name=joint.name, start=start, end=end))
    return segments


__all__ = ["BONE_LENGTHS", "BoneSegment", "bone_segments", "compose_world_rotations"]
