"""
Skeleton Renderer
=================

Draws detected poses as landmark markers joined by a fixed bone graph.

Design Rules:
    - Bones are drawn by walking BONE_GRAPH and looking up both ends
    - A bone with a missing endpoint is skipped, never drawn partially
    - Poses in a PoseSet are drawn independently
    - Each render() replaces the previous overlay (clear first)
    - A degenerate canvas makes render() a no-op
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pose_overlay.errors import DegenerateCanvas
from pose_overlay.models.orientation import CameraFacing, ImageRotation, Platform, Size
from pose_overlay.models.pose import LandmarkType, Pose, PoseSet
from pose_overlay.rendering.canvas import (
    CircleCommand,
    Color,
    DrawCommand,
    LineCommand,
    Point,
    RenderSurface,
    play,
)
from pose_overlay.rendering.mapper import CoordinateMapper, MirrorPolicy


logger = logging.getLogger(__name__)


class BoneSide(str, Enum):
    """Body side of a bone, selects its stroke style."""

    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


@dataclass(frozen=True, slots=True)
class Bone:
    """Segment drawn between two joints."""

    start: LandmarkType
    end: LandmarkType
    side: BoneSide


BONE_GRAPH: Tuple[Bone, ...] = (
    # Arms
    Bone(LandmarkType.LEFT_SHOULDER, LandmarkType.LEFT_ELBOW, BoneSide.LEFT),
    Bone(LandmarkType.LEFT_ELBOW, LandmarkType.LEFT_WRIST, BoneSide.LEFT),
    Bone(LandmarkType.RIGHT_SHOULDER, LandmarkType.RIGHT_ELBOW, BoneSide.RIGHT),
    Bone(LandmarkType.RIGHT_ELBOW, LandmarkType.RIGHT_WRIST, BoneSide.RIGHT),
    # Body
    Bone(LandmarkType.LEFT_SHOULDER, LandmarkType.RIGHT_SHOULDER, BoneSide.CENTER),
    Bone(LandmarkType.LEFT_SHOULDER, LandmarkType.LEFT_HIP, BoneSide.LEFT),
    Bone(LandmarkType.RIGHT_SHOULDER, LandmarkType.RIGHT_HIP, BoneSide.RIGHT),
    Bone(LandmarkType.LEFT_HIP, LandmarkType.RIGHT_HIP, BoneSide.CENTER),
    # Legs
    Bone(LandmarkType.LEFT_HIP, LandmarkType.LEFT_KNEE, BoneSide.LEFT),
    Bone(LandmarkType.LEFT_KNEE, LandmarkType.LEFT_ANKLE, BoneSide.LEFT),
    Bone(LandmarkType.RIGHT_HIP, LandmarkType.RIGHT_KNEE, BoneSide.RIGHT),
    Bone(LandmarkType.RIGHT_KNEE, LandmarkType.RIGHT_ANKLE, BoneSide.RIGHT),
)


GREEN: Color = (0, 255, 0)
YELLOW: Color = (255, 235, 59)
BLUE_ACCENT: Color = (68, 138, 255)


@dataclass(frozen=True)
class SkeletonStyle:
    """
    Marker and stroke style.

    Attributes:
        landmark_radius: Marker radius in canvas units
        landmark_color: Marker color (RGB)
        center_width: Stroke width of torso cross bones
        center_color: Stroke color of torso cross bones
        side_width: Stroke width of left/right bones
        left_color: Stroke color of the subject's left side
        right_color: Stroke color of the subject's right side
        min_confidence: Landmarks below this confidence are not drawn
    """

    landmark_radius: float = 1.0
    landmark_color: Color = GREEN
    center_width: float = 4.0
    center_color: Color = GREEN
    side_width: float = 3.0
    left_color: Color = YELLOW
    right_color: Color = BLUE_ACCENT
    min_confidence: float = 0.0

    def stroke(self, side: BoneSide) -> Tuple[float, Color]:
        """Width and color for a bone side."""
        if side == BoneSide.LEFT:
            return self.side_width, self.left_color
        if side == BoneSide.RIGHT:
            return self.side_width, self.right_color
        return self.center_width, self.center_color


class SkeletonRenderer:
    """
    Turns PoseSets into draw commands.

    Attributes:
        style: Marker and stroke style
        bone_graph: Bones to draw

    Example:
        renderer = SkeletonRenderer()
        mapper = CoordinateMapper(canvas, image, rotation, facing)
        renderer.render(poses, mapper, surface)
    """

    def __init__(
        self,
        style: Optional[SkeletonStyle] = None,
        bone_graph: Tuple[Bone, ...] = BONE_GRAPH,
    ) -> None:
        self.style = style or SkeletonStyle()
        self.bone_graph = bone_graph

    def _mapped_points(self, pose: Pose, mapper: CoordinateMapper) -> Dict[LandmarkType, Point]:
        """Canvas positions of the landmarks that pass the confidence filter."""
        return {
            landmark.type: mapper.map_landmark(landmark)
            for landmark in pose
            if landmark.confidence >= self.style.min_confidence
        }

    def pose_commands(self, pose: Pose, mapper: CoordinateMapper) -> List[DrawCommand]:
        """
        Draw commands for a single pose.

        Args:
            pose: Detected body
            mapper: Mapping for the current frame and canvas

        Returns:
            Landmark circles followed by bone lines
        """
        points = self._mapped_points(pose, mapper)

        commands: List[DrawCommand] = [
            CircleCommand(
                center=point,
                radius=self.style.landmark_radius,
                color=self.style.landmark_color,
            )
            for point in points.values()
        ]

        for bone in self.bone_graph:
            start = points.get(bone.start)
            end = points.get(bone.end)
            if start is None or end is None:
                continue
            width, color = self.style.stroke(bone.side)
            commands.append(LineCommand(start=start, end=end, width=width, color=color))

        return commands

    def build_commands(self, pose_set: PoseSet, mapper: CoordinateMapper) -> List[DrawCommand]:
        """Draw commands for every pose, in PoseSet order."""
        commands: List[DrawCommand] = []
        for pose in pose_set:
            commands.extend(self.pose_commands(pose, mapper))
        return commands

    def render(
        self,
        pose_set: PoseSet,
        mapper: CoordinateMapper,
        surface: RenderSurface,
    ) -> int:
        """
        Replace the surface's overlay with `pose_set`.

        Args:
            pose_set: Poses of the latest frame
            mapper: Mapping for the latest frame and the surface's canvas
            surface: Render target (caller's thread must own it)

        Returns:
            Number of primitives drawn
        """
        commands = self.build_commands(pose_set, mapper)
        surface.clear()
        play(commands, surface)
        surface.repaint()
        return len(commands)

    def render_frame(
        self,
        pose_set: PoseSet,
        surface: RenderSurface,
        canvas_size: Size,
        image_size: Size,
        rotation: ImageRotation,
        facing: CameraFacing,
        platform: Platform = Platform.ANDROID,
        mirror_policy: MirrorPolicy = MirrorPolicy.FRONT_CAMERA,
    ) -> int:
        """
        Build the mapper for a frame and render it.

        A zero-sized canvas or image leaves the surface untouched.

        Returns:
            Number of primitives drawn (0 when skipped)
        """
        try:
            mapper = CoordinateMapper(
                canvas_size=canvas_size,
                image_size=image_size,
                rotation=rotation,
                facing=facing,
                platform=platform,
                mirror_policy=mirror_policy,
            )
        except DegenerateCanvas as e:
            logger.debug(f"Skipping render: {e}")
            return 0

        return self.render(pose_set, mapper, surface)
