"""Utilities for rendering a solved rig with pyglet."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, cast

import numpy as np
import pyglet

from .data import PoseSolverResult
from .rig import bone_segments


@dataclass
class RigVisuals:
    """Container returned by :func:`create_rig_3d_batch`.

    batch: The pyglet batch that owns the vertex lists.
    entries: Mapping of semantic names (``joints``/``bones``) to the vertex
        lists created for rendering.
    """

    batch: "pyglet.graphics.Batch"
    entries: Dict[str, Any]


def create_rig_3d_batch(
    result: PoseSolverResult,
    *,
    batch: Optional["pyglet.graphics.Batch"] = None,
    group: Optional["pyglet.graphics.Group"] = None,
    joint_color: Tuple[int, int, int, int] = (255, 80, 80, 255),
    bone_color: Tuple[int, int, int, int] = (80, 160, 255, 255),
    translate: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    scale: float = 1.0,
) -> RigVisuals:
    """Create pyglet vertex lists that draw the reference rig posed by `result`.

    Callers add the batch to a pyglet window's draw routine via ``batch.draw()``.
    """

    offset = np.asarray(translate, dtype=np.float32)
    segments = bone_segments(result)

    bone_vertices: List[float] = []
    joint_vertices: List[float] = []
    for segment in segments:
        start = segment.start.astype(np.float32) * scale + offset
        end = segment.end.astype(np.float32) * scale + offset
        bone_vertices.extend(start.tolist())
        bone_vertices.extend(end.tolist())
        joint_vertices.extend(start.tolist())

    working_batch = batch or pyglet.graphics.Batch()
    shader = pyglet.graphics.get_default_shader()
    entries: Dict[str, Any] = {}

    joint_count = len(joint_vertices) // 3
    if joint_count:
        color_vec = [component / 255.0 for component in joint_color]
        entries["joints"] = shader.vertex_list(
            joint_count,
            pyglet.gl.GL_POINTS,
            batch=working_batch,
            group=cast(Any, group),
            position=("f", joint_vertices),
            colors=("f", color_vec * joint_count),
        )

    vertex_count = len(bone_vertices) // 3
    if vertex_count:
        color_vec = [component / 255.0 for component in bone_color]
        entries["bones"] = shader.vertex_list(
            vertex_count,
            pyglet.gl.GL_LINES,
            batch=working_batch,
            group=cast(Any, group),
            position=("f", bone_vertices),
            colors=("f", color_vec * vertex_count),
        )

    return RigVisuals(batch=working_batch, entries=entries)


def dispose_rig_visuals(visuals: RigVisuals) -> None:
    """Delete every vertex list owned by `visuals`."""

    for vertex_list in visuals.entries.values():
        vertex_list.delete()
    visuals.entries.clear()


__all__ = [
    "RigVisuals",
    "create_rig_3d_batch",
    "dispose_rig_visuals",
]
