"""
Stream Module
=============

Frame ingestion components.

This module provides the ingestion layer of the overlay pipeline:
    - resolve_rotation: Sensor/device/facing -> buffer rotation
    - FormatNormalizer: RawFrame -> NormalizedImage (or drop)
    - FrameScheduler: Single-slot admission control with throttle
    - OpenCVCameraSource: Push-style camera on a capture thread

Example:
    from pose_overlay.stream import FormatNormalizer, FrameScheduler

    normalizer = FormatNormalizer(Platform.ANDROID)
    scheduler = FrameScheduler(min_interval=0.1)

    def on_frame(raw, orientation):
        if not scheduler.try_acquire(time.monotonic()):
            return
        image = normalizer.normalize(raw, orientation)
        ...
"""

from pose_overlay.stream.rotation import resolve_rotation
from pose_overlay.stream.normalizer import FormatNormalizer
from pose_overlay.stream.scheduler import FrameScheduler, SchedulerState
from pose_overlay.stream.camera import (
    CameraDescription,
    CameraSource,
    OpenCVCameraSource,
)


__all__ = [
    "resolve_rotation",
    "FormatNormalizer",
    "FrameScheduler",
    "SchedulerState",
    "CameraDescription",
    "CameraSource",
    "OpenCVCameraSource",
]
