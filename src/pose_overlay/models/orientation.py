"""
Orientation Models
==================

Platform, camera and device orientation types used by the ingestion
pipeline and the coordinate mapper.

Coordinate Systems:
    Three independent orientations meet in this pipeline:
        - sensor orientation: fixed mounting angle of the camera sensor
        - device orientation: live rotation of the handset
        - canvas space: the on-screen render target

Platforms:
    ANDROID buffers arrive in sensor orientation and must be compensated
    for the device rotation. IOS buffers are already rotated by the OS
    camera stack, so only the sensor orientation is reported.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Platform(str, Enum):
    """
    Camera stack convention of the host platform.

    Attributes:
        ANDROID: Buffers are NOT pre-rotated (compensating platform)
        IOS: Buffers are pre-rotated by the preview pipeline
    """

    ANDROID = "android"
    IOS = "ios"


class DeviceOrientation(str, Enum):
    """
    Live device orientation.

    Only the four cardinal states have a rotation compensation.
    FACE_UP, FACE_DOWN and UNKNOWN exist so that sensor readings
    without one can be represented and rejected per frame.
    """

    PORTRAIT_UP = "portrait_up"
    LANDSCAPE_LEFT = "landscape_left"
    PORTRAIT_DOWN = "portrait_down"
    LANDSCAPE_RIGHT = "landscape_right"
    FACE_UP = "face_up"
    FACE_DOWN = "face_down"
    UNKNOWN = "unknown"


class CameraFacing(str, Enum):
    """Direction the active camera lens points to."""

    FRONT = "front"
    BACK = "back"
    EXTERNAL = "external"


class ImageRotation(int, Enum):
    """Clockwise rotation needed to bring a buffer upright."""

    DEG_0 = 0
    DEG_90 = 90
    DEG_180 = 180
    DEG_270 = 270

    @classmethod
    def from_degrees(cls, degrees: int) -> Optional["ImageRotation"]:
        """
        Look up a rotation by its exact degree value.

        Args:
            degrees: Rotation in degrees (any integer, taken mod 360)

        Returns:
            Matching rotation, or None if not a multiple of 90
        """
        try:
            return cls(int(degrees) % 360)
        except ValueError:
            return None

    @property
    def swaps_axes(self) -> bool:
        """Whether the upright image has width and height swapped."""
        return self in (ImageRotation.DEG_90, ImageRotation.DEG_270)


@dataclass(frozen=True, slots=True)
class Size:
    """Width/height pair in pixels (image) or logical units (canvas)."""

    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        """True when either dimension is zero or negative."""
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True, slots=True)
class DeviceOrientationState:
    """
    Read-only orientation snapshot taken for a single frame.

    Attributes:
        device_orientation: Current device rotation
        sensor_orientation: Sensor mounting angle in degrees (fixed per camera)
        facing: Facing of the camera that produced the frame
    """

    device_orientation: DeviceOrientation
    sensor_orientation: int
    facing: CameraFacing
