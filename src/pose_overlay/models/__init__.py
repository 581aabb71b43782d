"""
Data Models
===========

Typed models for the pose overlay pipeline.

This module re-exports all data models for convenient access.

Models:
    Orientation:
        - Platform, DeviceOrientation, CameraFacing, ImageRotation
        - DeviceOrientationState: Per-frame orientation snapshot
        - Size: Width/height pair

    Frame:
        - Plane, RawFrame: Platform-native camera frame
        - PixelFormat, NormalizedImage: Canonical engine input

    Pose:
        - LandmarkType, Landmark, Pose, PoseSet

    Output:
        - DrawCommandModel, OverlayOutput: Service response schema
"""

from pose_overlay.models.orientation import (
    CameraFacing,
    DeviceOrientation,
    DeviceOrientationState,
    ImageRotation,
    Platform,
    Size,
)
from pose_overlay.models.frame import (
    ANDROID_NV21,
    ANDROID_YUV_420_888,
    IOS_BGRA,
    NormalizedImage,
    PixelFormat,
    Plane,
    RawFrame,
)
from pose_overlay.models.pose import (
    EMPTY_POSE_SET,
    Landmark,
    LandmarkType,
    Pose,
    PoseSet,
)
from pose_overlay.models.output import DrawCommandModel, OverlayOutput, SizeModel

__all__ = [
    # Orientation
    "Platform",
    "DeviceOrientation",
    "CameraFacing",
    "ImageRotation",
    "DeviceOrientationState",
    "Size",
    # Frame
    "Plane",
    "RawFrame",
    "PixelFormat",
    "NormalizedImage",
    "ANDROID_NV21",
    "ANDROID_YUV_420_888",
    "IOS_BGRA",
    # Pose
    "LandmarkType",
    "Landmark",
    "Pose",
    "PoseSet",
    "EMPTY_POSE_SET",
    # Output
    "SizeModel",
    "DrawCommandModel",
    "OverlayOutput",
]
