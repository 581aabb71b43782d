"""
Rendering Module
================

Maps poses into canvas space and draws them.

This module provides:
    - CoordinateMapper: Source-image pixels -> canvas coordinates
    - SkeletonRenderer: Landmark markers + fixed bone graph
    - RenderSurface: Protocol for draw targets
    - RecordingSurface / OpenCVSurface: Concrete surfaces

Design Rules:
    - Pure mapping functions; no state between frames
    - Draws only through a RenderSurface handed in by its owner
"""

from pose_overlay.rendering.mapper import (
    CoordinateMapper,
    MirrorPolicy,
    mirror_x,
    translate_x,
    translate_y,
)
from pose_overlay.rendering.canvas import (
    CircleCommand,
    DrawCommand,
    LineCommand,
    OpenCVSurface,
    RecordingSurface,
    RenderSurface,
)
from pose_overlay.rendering.skeleton import (
    BONE_GRAPH,
    Bone,
    BoneSide,
    SkeletonRenderer,
    SkeletonStyle,
)


__all__ = [
    "CoordinateMapper",
    "MirrorPolicy",
    "mirror_x",
    "translate_x",
    "translate_y",
    "CircleCommand",
    "LineCommand",
    "DrawCommand",
    "RenderSurface",
    "RecordingSurface",
    "OpenCVSurface",
    "BONE_GRAPH",
    "Bone",
    "BoneSide",
    "SkeletonRenderer",
    "SkeletonStyle",
]
