"""
Overlay Output Models
=====================

Pydantic models for the overlay service responses.

The service exposes the latest skeleton overlay as draw commands already
mapped into the requested canvas space, so any client can paint them
without knowing about rotation, mirroring or the source image size.

Output Contract:
    {
        "timestamp": 1770500938.284,
        "canvas": {"width": 400, "height": 800},
        "image": {"width": 1920, "height": 1080},
        "rotation": 90,
        "facing": "back",
        "pose_count": 1,
        "commands": [
            {"kind": "circle", "points": [[355.6, 225.0]],
             "size": 1.0, "color": [0, 255, 0]},
            {"kind": "line", "points": [[120.0, 300.5], [140.2, 390.1]],
             "size": 3.0, "color": [255, 235, 59]}
        ]
    }
"""

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from pose_overlay.models.orientation import CameraFacing


class SizeModel(BaseModel):
    """Width/height pair."""

    width: float = Field(..., ge=0, description="Width")
    height: float = Field(..., ge=0, description="Height")


class DrawCommandModel(BaseModel):
    """
    Single draw primitive in canvas coordinates.

    Attributes:
        kind: "circle" (one point, size = radius) or "line"
            (two points, size = stroke width)
        points: Canvas coordinates
        size: Radius or stroke width
        color: RGB color
    """

    kind: Literal["circle", "line"] = Field(..., description="Primitive type")
    points: List[Tuple[float, float]] = Field(
        ...,
        min_length=1,
        max_length=2,
        description="Canvas coordinates of the primitive",
    )
    size: float = Field(..., ge=0, description="Radius or stroke width")
    color: Tuple[int, int, int] = Field(..., description="RGB color")


class OverlayOutput(BaseModel):
    """
    Latest overlay rendered for a given canvas.

    Attributes:
        timestamp: Capture time of the frame the poses came from
        canvas: Canvas size the commands were mapped to
        image: Source image size reported by the normalizer
        rotation: Rotation applied to the source image (degrees)
        facing: Camera facing of the frame
        pose_count: Number of poses in the frame
        commands: Draw commands, in paint order
    """

    timestamp: float = Field(..., description="Frame capture time (seconds)")
    canvas: SizeModel
    image: SizeModel
    rotation: int = Field(..., description="Rotation in degrees")
    facing: CameraFacing
    pose_count: int = Field(..., ge=0, description="Poses detected")
    commands: List[DrawCommandModel] = Field(default_factory=list)
    error: Optional[str] = Field(
        default=None,
        description="Set when the overlay could not be drawn (e.g. empty canvas)",
    )
