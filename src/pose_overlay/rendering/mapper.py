"""
Coordinate Mapper
=================

Projects landmark coordinates from source-image pixels onto the canvas.

Mapping Rules:
    rotation 90/270 (axes swapped):
        ANDROID: x / image.height, y / image.width
        IOS:     x / image.width,  y / image.height
    rotation 0/180:
        x / image.width, y / image.height

    screen = source * canvas_dimension / divisor

    Front camera previews are mirrored horizontally, so with
    MirrorPolicy.FRONT_CAMERA a front-facing frame maps to
    canvas.width - screen_x. The vertical axis is never mirrored.

Note:
    The ANDROID/IOS asymmetry for quarter turns reflects whether the
    preview and the raw buffer share orientation. ANDROID landmarks are
    reported in the rotated (upright) image, whose width is the buffer
    height; IOS buffers were already rotated before they were reported.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from pose_overlay.errors import DegenerateCanvas
from pose_overlay.models.orientation import CameraFacing, ImageRotation, Platform, Size
from pose_overlay.models.pose import Landmark


class MirrorPolicy(str, Enum):
    """
    Horizontal mirroring policy for the overlay.

    Attributes:
        NEVER: Overlay is never mirrored
        FRONT_CAMERA: Overlay is mirrored for front-facing cameras
    """

    NEVER = "never"
    FRONT_CAMERA = "front_camera"


def _divisors(
    image_size: Size,
    rotation: ImageRotation,
    platform: Platform,
) -> Tuple[float, float]:
    """Source dimensions matching the canvas x and y axes."""
    if rotation.swaps_axes and platform == Platform.ANDROID:
        x_divisor, y_divisor = image_size.height, image_size.width
    else:
        x_divisor, y_divisor = image_size.width, image_size.height

    if x_divisor <= 0 or y_divisor <= 0:
        raise DegenerateCanvas(
            f"Image size {image_size.width}x{image_size.height} has a zero dimension"
        )
    return x_divisor, y_divisor


def should_mirror(facing: CameraFacing, mirror_policy: MirrorPolicy) -> bool:
    """Whether the horizontal axis is reflected for this camera."""
    return mirror_policy == MirrorPolicy.FRONT_CAMERA and facing == CameraFacing.FRONT


def mirror_x(x: float, canvas_width: float) -> float:
    """Reflect x across the canvas' vertical center line."""
    return canvas_width - x


def translate_x(
    x: float,
    canvas_size: Size,
    image_size: Size,
    rotation: ImageRotation,
    facing: CameraFacing,
    platform: Platform = Platform.ANDROID,
    mirror_policy: MirrorPolicy = MirrorPolicy.FRONT_CAMERA,
) -> float:
    """
    Map a source-image x coordinate to canvas space.

    Args:
        x: Source-image x in pixels
        canvas_size: Render target size
        image_size: Source buffer size as reported by the normalizer
        rotation: Resolved buffer rotation
        facing: Camera facing of the frame
        platform: Camera stack convention
        mirror_policy: Front-camera mirroring policy

    Returns:
        Canvas x

    Raises:
        DegenerateCanvas: If the image has a zero dimension
    """
    x_divisor, _ = _divisors(image_size, rotation, platform)
    screen_x = x * canvas_size.width / x_divisor
    if should_mirror(facing, mirror_policy):
        screen_x = mirror_x(screen_x, canvas_size.width)
    return screen_x


def translate_y(
    y: float,
    canvas_size: Size,
    image_size: Size,
    rotation: ImageRotation,
    facing: CameraFacing,
    platform: Platform = Platform.ANDROID,
) -> float:
    """
    Map a source-image y coordinate to canvas space.

    The facing is accepted for symmetry with translate_x; the vertical
    axis is never mirrored.

    Raises:
        DegenerateCanvas: If the image has a zero dimension
    """
    _, y_divisor = _divisors(image_size, rotation, platform)
    return y * canvas_size.height / y_divisor


@dataclass(frozen=True, slots=True)
class CoordinateMapper:
    """
    Mapping parameters for one frame and one canvas.

    Construction fails with DegenerateCanvas when the canvas or the
    image has a zero dimension, so callers can skip drawing up front.

    Attributes:
        canvas_size: Render target size
        image_size: Source buffer size
        rotation: Resolved buffer rotation
        facing: Camera facing of the frame
        platform: Camera stack convention
        mirror_policy: Front-camera mirroring policy

    Example:
        mapper = CoordinateMapper(
            canvas_size=Size(400, 800),
            image_size=Size(1920, 1080),
            rotation=ImageRotation.DEG_90,
            facing=CameraFacing.BACK,
        )
        mapper.map_point(960, 540)  # (355.55..., 225.0)
    """

    canvas_size: Size
    image_size: Size
    rotation: ImageRotation
    facing: CameraFacing
    platform: Platform = Platform.ANDROID
    mirror_policy: MirrorPolicy = MirrorPolicy.FRONT_CAMERA

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.canvas_size.is_empty:
            raise DegenerateCanvas(
                f"Canvas size {self.canvas_size.width}x{self.canvas_size.height} "
                f"has a zero dimension"
            )
        _divisors(self.image_size, self.rotation, self.platform)

    @property
    def mirrored(self) -> bool:
        return should_mirror(self.facing, self.mirror_policy)

    def map_x(self, x: float) -> float:
        return translate_x(
            x,
            self.canvas_size,
            self.image_size,
            self.rotation,
            self.facing,
            self.platform,
            self.mirror_policy,
        )

    def map_y(self, y: float) -> float:
        return translate_y(
            y,
            self.canvas_size,
            self.image_size,
            self.rotation,
            self.facing,
            self.platform,
        )

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        """Map a source-image point to canvas coordinates."""
        return self.map_x(x), self.map_y(y)

    def map_landmark(self, landmark: Landmark) -> Tuple[float, float]:
        """Map a landmark's position to canvas coordinates."""
        return self.map_point(landmark.x, landmark.y)

    def unmap_point(self, screen_x: float, screen_y: float) -> Tuple[float, float]:
        """
        Inverse of map_point: canvas coordinates back to source pixels.

        Useful for hit-testing a touch against detected landmarks.
        """
        x_divisor, y_divisor = _divisors(self.image_size, self.rotation, self.platform)
        if self.mirrored:
            screen_x = mirror_x(screen_x, self.canvas_size.width)
        return (
            screen_x * x_divisor / self.canvas_size.width,
            screen_y * y_divisor / self.canvas_size.height,
        )
