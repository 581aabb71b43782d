"""
Rotation Resolver
=================

Computes the rotation an estimation engine must apply to bring a camera
buffer upright.

Rules:
    ANDROID (buffers not pre-rotated):
        compensation = {portrait_up: 0, landscape_left: 90,
                        portrait_down: 180, landscape_right: 270}
        front camera:  (sensor + compensation) % 360
        other cameras: (sensor - compensation + 360) % 360

    IOS (buffers pre-rotated by the camera stack):
        rotation = sensor orientation

Example:
    >>> resolve_rotation(90, DeviceOrientation.LANDSCAPE_LEFT,
    ...                  CameraFacing.FRONT, Platform.ANDROID)
    <ImageRotation.DEG_180: 180>
"""

import math
from typing import Dict

from pose_overlay.errors import UnsupportedOrientation
from pose_overlay.models.orientation import (
    CameraFacing,
    DeviceOrientation,
    ImageRotation,
    Platform,
)


DEVICE_ORIENTATION_COMPENSATION: Dict[DeviceOrientation, int] = {
    DeviceOrientation.PORTRAIT_UP: 0,
    DeviceOrientation.LANDSCAPE_LEFT: 90,
    DeviceOrientation.PORTRAIT_DOWN: 180,
    DeviceOrientation.LANDSCAPE_RIGHT: 270,
}


def _nearest_quarter_turn(degrees: float) -> ImageRotation:
    """Round an angle to the nearest of 0/90/180/270. Halfway angles round up."""
    return ImageRotation((int(math.floor(degrees / 90.0 + 0.5)) * 90) % 360)


def resolve_rotation(
    sensor_orientation: int,
    device_orientation: DeviceOrientation,
    facing: CameraFacing,
    platform: Platform,
) -> ImageRotation:
    """
    Resolve the buffer rotation for one frame.

    Args:
        sensor_orientation: Sensor mounting angle in degrees
        device_orientation: Current device rotation
        facing: Facing of the active camera
        platform: Camera stack convention

    Returns:
        Rotation in {0, 90, 180, 270}

    Raises:
        UnsupportedOrientation: If the device orientation has no
            compensation (ANDROID) or the sensor angle is not a
            quarter turn (IOS)
    """
    if platform == Platform.IOS:
        rotation = ImageRotation.from_degrees(sensor_orientation)
        if rotation is None:
            raise UnsupportedOrientation(
                f"Sensor orientation {sensor_orientation} is not a quarter turn"
            )
        return rotation

    compensation = DEVICE_ORIENTATION_COMPENSATION.get(device_orientation)
    if compensation is None:
        raise UnsupportedOrientation(
            f"No rotation compensation for device orientation "
            f"{device_orientation.value}"
        )

    if facing == CameraFacing.FRONT:
        combined = (sensor_orientation + compensation) % 360
    else:
        combined = (sensor_orientation - compensation + 360) % 360

    return _nearest_quarter_turn(combined)
