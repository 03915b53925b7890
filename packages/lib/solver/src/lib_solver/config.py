"""Tunable constants of the solver, with an optional JSON override file."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .data import HandLandmark

# 手首の向きの基準に使える指の付け根
WRIST_TARGETS = (HandLandmark.MIDDLE_MCP, HandLandmark.PINKY_MCP)


@dataclass(frozen=True)
class SolverConfig:
    # Wrist segment runs wrist -> this landmark.
    wrist_target: HandLandmark = HandLandmark.MIDDLE_MCP
    # Added to the neck tilt; offsets the forward bias of the face-towards basis.
    neck_tilt_offset: float = -math.pi / 9.0
    # Largest hip swing away from straight down.
    hip_max_angle: float = math.pi / 2.0
    # Eye aspect ratio band mapped onto openness 0..1.
    eye_closed_ratio: float = 0.15
    eye_open_ratio: float = 0.28
    # Mouth openness = clamp((ratio - offset) / scale, 0, max).
    mouth_ratio_offset: float = 0.1
    mouth_ratio_scale: float = 0.5
    mouth_max_openness: float = 0.7
    # Gaze (-1..1, -0.5..0.5) is scaled into these angle budgets.
    gaze_max_yaw: float = math.pi / 6.0
    gaze_max_pitch: float = math.pi / 12.0
    smile_threshold: float = 0.008
    smile_gain: float = 120.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "wrist_target", HandLandmark(self.wrist_target))
        if self.wrist_target not in WRIST_TARGETS:
            raise ValueError(
                f"wrist_target must be one of {[t.name for t in WRIST_TARGETS]}"
            )
        if not 0.0 < self.hip_max_angle <= math.pi:
            raise ValueError("hip_max_angle must be in (0, pi]")
        if self.eye_closed_ratio >= self.eye_open_ratio:
            raise ValueError("eye_closed_ratio must be smaller than eye_open_ratio")
        if self.mouth_ratio_scale <= 0.0:
            raise ValueError("mouth_ratio_scale must be positive")
        if self.mouth_max_openness < 0.0:
            raise ValueError("mouth_max_openness must not be negative")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SolverConfig":
        """Build a config from a plain mapping; unknown keys are ignored."""

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            if key not in known:
                continue
            if key == "wrist_target":
                values[key] = _as_hand_landmark(value)
            else:
                values[key] = float(value)
        return cls(**values)


def _as_hand_landmark(value: Any) -> HandLandmark:
    if isinstance(value, str):
        return HandLandmark[value.strip().upper()]
    return HandLandmark(int(value))


def load_config(path: Optional[str | Path] = None) -> SolverConfig:
    """Read a JSON config file. A missing path or file yields the defaults."""

    if path is None:
        return SolverConfig()
    p = Path(path).expanduser().resolve()
    if not p.exists():
        return SolverConfig()
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"config root must be an object: {p}")
    return SolverConfig.from_dict(raw)


__all__ = ["SolverConfig", "WRIST_TARGETS", "load_config"]
