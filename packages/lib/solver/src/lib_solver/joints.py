"""Fixed joint hierarchy and bind-pose directions.

The hierarchy is plain data: each :class:`JointSpec` names the landmarks that
span the joint's segment, its parent, the bind-pose direction it is measured
against and the strategy used to turn the observed direction into a rotation.
Rows are ordered so that every parent precedes its children.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

import numpy as np

from .data import BodyLandmark, HandLandmark

JointName = str


class Side(Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def sign(self) -> float:
        return 1.0 if self is Side.LEFT else -1.0


class Stream(Enum):
    """Landmark stream a joint reads its segment from."""

    BODY = "body"
    LEFT_HAND = "left_hand"
    RIGHT_HAND = "right_hand"


class Strategy(Enum):
    ROTATION_BETWEEN = "rotation_between"
    UPPER_BODY = "upper_body"
    NECK = "neck"
    HIP = "hip"
    COPY = "copy"


class DefaultDirection(Enum):
    BODY_AXIS = "body_axis"
    LEG = "leg"
    LEFT_ARM = "left_arm"
    RIGHT_ARM = "right_arm"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_THUMB = "left_thumb"
    RIGHT_THUMB = "right_thumb"
    LEFT_FINGER = "left_finger"
    RIGHT_FINGER = "right_finger"


def _unit(x: float, y: float, z: float) -> np.ndarray:
    vector = np.array([x, y, z], dtype=np.float64)
    vector /= np.linalg.norm(vector)
    vector.flags.writeable = False
    return vector


def _build_default_directions() -> Mapping[DefaultDirection, np.ndarray]:
    table = {
        DefaultDirection.BODY_AXIS: _unit(1.0, 0.0, 0.0),
        DefaultDirection.LEG: _unit(0.0, -1.0, 0.0),
    }
    for side, arm, wrist, thumb, finger in (
        (
            Side.LEFT,
            DefaultDirection.LEFT_ARM,
            DefaultDirection.LEFT_WRIST,
            DefaultDirection.LEFT_THUMB,
            DefaultDirection.LEFT_FINGER,
        ),
        (
            Side.RIGHT,
            DefaultDirection.RIGHT_ARM,
            DefaultDirection.RIGHT_WRIST,
            DefaultDirection.RIGHT_THUMB,
            DefaultDirection.RIGHT_FINGER,
        ),
    ):
        s = side.sign
        table[arm] = _unit(s, -1.0, 0.0)
        table[wrist] = _unit(s, -1.0, -1.0)
        # thumb is mirrored relative to the other fingers
        table[thumb] = _unit(-s, -1.0, -1.0)
        table[finger] = _unit(s, -1.0, 0.0)

    missing = set(DefaultDirection) - set(table)
    if missing:
        raise RuntimeError(f"Missing default directions: {sorted(m.name for m in missing)}")
    return MappingProxyType(table)


DEFAULT_DIRECTIONS: Mapping[DefaultDirection, np.ndarray] = _build_default_directions()


@dataclass(frozen=True)
class JointSpec:
    """One row of the joint table.

    origin: landmark slots averaged to get the segment start.
    target: landmark slots averaged to get the segment end.
    default: bind-pose direction in the parent's frame (None for strategies
        that do not measure against one).
    """

    name: JointName
    parent: Optional[JointName]
    stream: Stream
    origin: Tuple[int, ...]
    target: Tuple[int, ...]
    default: Optional[DefaultDirection]
    strategy: Strategy

    @property
    def default_direction(self) -> Optional[np.ndarray]:
        if self.default is None:
            return None
        return DEFAULT_DIRECTIONS[self.default]


_FINGERS = (
    (
        "index_finger",
        (HandLandmark.INDEX_MCP, HandLandmark.INDEX_PIP, HandLandmark.INDEX_DIP, HandLandmark.INDEX_TIP),
    ),
    (
        "middle_finger",
        (HandLandmark.MIDDLE_MCP, HandLandmark.MIDDLE_PIP, HandLandmark.MIDDLE_DIP, HandLandmark.MIDDLE_TIP),
    ),
    (
        "ring_finger",
        (HandLandmark.RING_MCP, HandLandmark.RING_PIP, HandLandmark.RING_DIP, HandLandmark.RING_TIP),
    ),
    (
        "pinky_finger",
        (HandLandmark.PINKY_MCP, HandLandmark.PINKY_PIP, HandLandmark.PINKY_DIP, HandLandmark.PINKY_TIP),
    ),
)
_FINGER_SEGMENTS = ("mcp", "pip", "dip")
_THUMB = (HandLandmark.THUMB_CMC, HandLandmark.THUMB_MCP, HandLandmark.THUMB_IP)
_THUMB_SEGMENTS = ("cmc", "mcp")


def _body_rows() -> List[JointSpec]:
    rows = [
        JointSpec(
            name="upper_body",
            parent=None,
            stream=Stream.BODY,
            origin=(BodyLandmark.RIGHT_SHOULDER,),
            target=(BodyLandmark.LEFT_SHOULDER,),
            default=DefaultDirection.BODY_AXIS,
            strategy=Strategy.UPPER_BODY,
        ),
        JointSpec(
            name="lower_body",
            parent=None,
            stream=Stream.BODY,
            origin=(BodyLandmark.RIGHT_HIP,),
            target=(BodyLandmark.LEFT_HIP,),
            default=DefaultDirection.BODY_AXIS,
            strategy=Strategy.ROTATION_BETWEEN,
        ),
        JointSpec(
            name="neck",
            parent="upper_body",
            stream=Stream.BODY,
            origin=(BodyLandmark.LEFT_SHOULDER, BodyLandmark.RIGHT_SHOULDER),
            target=(BodyLandmark.NOSE,),
            default=None,
            strategy=Strategy.NECK,
        ),
    ]

    for side in (Side.LEFT, Side.RIGHT):
        p = side.value
        upper = BodyLandmark[f"{p.upper()}_SHOULDER"]
        elbow = BodyLandmark[f"{p.upper()}_ELBOW"]
        wrist = BodyLandmark[f"{p.upper()}_WRIST"]
        hip = BodyLandmark[f"{p.upper()}_HIP"]
        knee = BodyLandmark[f"{p.upper()}_KNEE"]
        arm_default = DefaultDirection[f"{p.upper()}_ARM"]
        rows.extend(
            [
                JointSpec(
                    name=f"{p}_upper_arm",
                    parent="upper_body",
                    stream=Stream.BODY,
                    origin=(upper,),
                    target=(elbow,),
                    default=arm_default,
                    strategy=Strategy.ROTATION_BETWEEN,
                ),
                JointSpec(
                    name=f"{p}_lower_arm",
                    parent=f"{p}_upper_arm",
                    stream=Stream.BODY,
                    origin=(elbow,),
                    target=(wrist,),
                    default=arm_default,
                    strategy=Strategy.ROTATION_BETWEEN,
                ),
                JointSpec(
                    name=f"{p}_hip",
                    parent="lower_body",
                    stream=Stream.BODY,
                    origin=(hip,),
                    target=(knee,),
                    default=DefaultDirection.LEG,
                    strategy=Strategy.HIP,
                ),
                JointSpec(
                    name=f"{p}_foot",
                    parent=f"{p}_hip",
                    stream=Stream.BODY,
                    origin=(),
                    target=(),
                    default=None,
                    strategy=Strategy.COPY,
                ),
            ]
        )
    return rows


def _hand_rows(side: Side, wrist_target: HandLandmark) -> List[JointSpec]:
    p = side.value
    stream = Stream.LEFT_HAND if side is Side.LEFT else Stream.RIGHT_HAND
    finger_default = DefaultDirection[f"{p.upper()}_FINGER"]
    rows = [
        JointSpec(
            name=f"{p}_wrist",
            parent=f"{p}_lower_arm",
            stream=stream,
            origin=(HandLandmark.WRIST,),
            target=(wrist_target,),
            default=DefaultDirection[f"{p.upper()}_WRIST"],
            strategy=Strategy.ROTATION_BETWEEN,
        )
    ]

    parent = f"{p}_wrist"
    for i, segment in enumerate(_THUMB_SEGMENTS):
        name = f"{p}_thumb_{segment}"
        rows.append(
            JointSpec(
                name=name,
                parent=parent,
                stream=stream,
                origin=(_THUMB[i],),
                target=(_THUMB[i + 1],),
                default=DefaultDirection[f"{p.upper()}_THUMB"],
                strategy=Strategy.ROTATION_BETWEEN,
            )
        )
        parent = name

    for finger, landmarks in _FINGERS:
        parent = f"{p}_wrist"
        for i, segment in enumerate(_FINGER_SEGMENTS):
            name = f"{p}_{finger}_{segment}"
            rows.append(
                JointSpec(
                    name=name,
                    parent=parent,
                    stream=stream,
                    origin=(landmarks[i],),
                    target=(landmarks[i + 1],),
                    default=finger_default,
                    strategy=Strategy.ROTATION_BETWEEN,
                )
            )
            parent = name
    return rows


def build_joint_table(
    wrist_target: HandLandmark = HandLandmark.MIDDLE_MCP,
) -> Tuple[JointSpec, ...]:
    """Return the full joint table in dependency order."""

    rows = _body_rows()
    rows.extend(_hand_rows(Side.LEFT, wrist_target))
    rows.extend(_hand_rows(Side.RIGHT, wrist_target))

    seen: set[str] = set()
    for row in rows:
        if row.parent is not None and row.parent not in seen:
            raise RuntimeError(f"Joint {row.name} listed before its parent {row.parent}")
        seen.add(row.name)
    return tuple(rows)


JOINTS: Tuple[JointSpec, ...] = build_joint_table()
JOINT_PARENTS: Mapping[JointName, Optional[JointName]] = MappingProxyType(
    {row.name: row.parent for row in JOINTS}
)


__all__ = [
    "DEFAULT_DIRECTIONS",
    "DefaultDirection",
    "JOINTS",
    "JOINT_PARENTS",
    "JointName",
    "JointSpec",
    "Side",
    "Strategy",
    "Stream",
    "build_joint_table",
]
