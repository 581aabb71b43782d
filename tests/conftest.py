"""
Test Configuration
==================

Pytest fixtures and test configuration for PoseOverlay.
"""

from typing import List, Optional

import pytest

from pose_overlay.errors import SessionStartError
from pose_overlay.models.frame import ANDROID_NV21, IOS_BGRA, Plane, RawFrame
from pose_overlay.models.orientation import (
    CameraFacing,
    DeviceOrientation,
    DeviceOrientationState,
    Size,
)
from pose_overlay.models.pose import Landmark, Pose
from pose_overlay.perception.engine import STANDING_TEMPLATE
from pose_overlay.stream.camera import CameraDescription


class FakeCameraSource:
    """In-memory camera source; frames are pushed with emit()."""

    def __init__(self, description: CameraDescription, fail_open: bool = False) -> None:
        self.description = description
        self.fail_open = fail_open
        self.device_orientation = DeviceOrientation.PORTRAIT_UP
        self.callback = None
        self.start_count = 0
        self.stop_count = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self, callback) -> None:
        if self.fail_open:
            raise SessionStartError(f"Cannot open camera {self.description.name}")
        self.callback = callback
        self.start_count += 1
        self._running = True

    def stop(self) -> None:
        self.stop_count += 1
        self._running = False

    def orientation(self) -> DeviceOrientationState:
        return DeviceOrientationState(
            device_orientation=self.device_orientation,
            sensor_orientation=self.description.sensor_orientation,
            facing=self.description.facing,
        )

    def emit(self, raw: RawFrame) -> None:
        self.callback(raw, self.orientation())


class FakeCameraFactory:
    """Builds FakeCameraSources and remembers them."""

    def __init__(self) -> None:
        self.sources: List[FakeCameraSource] = []
        self.fail_open = False

    def __call__(self, description: CameraDescription) -> FakeCameraSource:
        source = FakeCameraSource(description, fail_open=self.fail_open)
        self.sources.append(source)
        return source

    @property
    def last(self) -> Optional[FakeCameraSource]:
        return self.sources[-1] if self.sources else None


def build_nv21_frame(
    width: int = 640,
    height: int = 480,
    timestamp: float = 0.0,
    format_tag: int = ANDROID_NV21,
) -> RawFrame:
    """NV21-shaped frame; contents are not meaningful pixels."""
    return RawFrame(
        width=width,
        height=height,
        planes=(
            Plane(bytes=b"\x10" * (width * height), bytes_per_row=width),
            Plane(bytes=b"\x80" * (width * height // 2), bytes_per_row=width),
        ),
        format_tag=format_tag,
        timestamp=timestamp,
    )


def build_bgra_frame(width: int = 4, height: int = 2, timestamp: float = 0.0) -> RawFrame:
    return RawFrame(
        width=width,
        height=height,
        planes=(Plane(bytes=b"\x00" * (width * height * 4), bytes_per_row=width * 4),),
        format_tag=IOS_BGRA,
        timestamp=timestamp,
    )


def build_pose(size: Size, confidence: float = 0.9, missing=(), overrides=None) -> Pose:
    """Standing figure scaled to `size`, optionally with per-joint confidence."""
    overrides = overrides or {}
    return Pose.from_landmarks(
        Landmark(
            type=landmark_type,
            x=nx * size.width,
            y=ny * size.height,
            confidence=overrides.get(landmark_type, confidence),
        )
        for landmark_type, (nx, ny) in STANDING_TEMPLATE.items()
        if landmark_type not in missing
    )


@pytest.fixture
def back_camera():
    """Back camera with the usual 90° sensor mounting."""
    return CameraDescription(
        name="back",
        device=0,
        facing=CameraFacing.BACK,
        sensor_orientation=90,
    )


@pytest.fixture
def front_camera():
    """Front camera with the usual 270° sensor mounting."""
    return CameraDescription(
        name="front",
        device=1,
        facing=CameraFacing.FRONT,
        sensor_orientation=270,
    )


@pytest.fixture
def portrait_back_state():
    """Orientation snapshot: back camera, device upright."""
    return DeviceOrientationState(
        device_orientation=DeviceOrientation.PORTRAIT_UP,
        sensor_orientation=90,
        facing=CameraFacing.BACK,
    )


@pytest.fixture
def camera_factory():
    """Factory producing in-memory camera sources."""
    return FakeCameraFactory()


@pytest.fixture
def nv21_frame():
    """A 640x480 NV21 frame."""
    return build_nv21_frame()


@pytest.fixture
def make_nv21_frame():
    return build_nv21_frame


@pytest.fixture
def make_bgra_frame():
    return build_bgra_frame


@pytest.fixture
def make_pose():
    return build_pose
