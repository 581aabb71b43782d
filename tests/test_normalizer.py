"""
Format Normalizer Tests
=======================

Tests for RawFrame -> NormalizedImage conversion and its drop cases.
"""

import pytest

from pose_overlay.errors import UnrecognizedPixelFormat
from pose_overlay.models.frame import (
    ANDROID_NV21,
    ANDROID_YUV_420_888,
    IOS_BGRA,
    PixelFormat,
    Plane,
    RawFrame,
)
from pose_overlay.models.orientation import (
    CameraFacing,
    DeviceOrientation,
    DeviceOrientationState,
    ImageRotation,
    Platform,
)
from pose_overlay.stream.normalizer import FormatNormalizer, canonical_format


@pytest.fixture
def android():
    return FormatNormalizer(Platform.ANDROID)


@pytest.fixture
def ios():
    return FormatNormalizer(Platform.IOS)


class TestAndroid:
    """ANDROID frames."""

    def test_nv21_planes_concatenated(self, android, portrait_back_state):
        """Verify NV21 planes are joined into one buffer."""
        raw = RawFrame(
            width=4,
            height=2,
            planes=(
                Plane(bytes=b"YYYYYYYY", bytes_per_row=4),
                Plane(bytes=b"VUVU", bytes_per_row=6),
            ),
            format_tag=ANDROID_NV21,
            timestamp=12.5,
        )

        image = android.normalize(raw, portrait_back_state)

        assert image is not None
        assert image.data == b"YYYYYYYYVUVU"
        assert image.format == PixelFormat.NV21
        assert image.bytes_per_row == 4
        assert (image.width, image.height) == (4, 2)
        assert image.rotation == ImageRotation.DEG_90
        assert image.timestamp == 12.5

    def test_yuv_420_888_is_nv21(self, android, portrait_back_state, make_nv21_frame):
        """Verify YUV_420_888 frames are treated as NV21."""
        image = android.normalize(
            make_nv21_frame(format_tag=ANDROID_YUV_420_888), portrait_back_state
        )
        assert image.format == PixelFormat.NV21

    def test_unknown_tag_dropped(self, android, portrait_back_state, make_nv21_frame):
        """Verify unknown format tags are dropped."""
        assert android.normalize(make_nv21_frame(format_tag=42), portrait_back_state) is None
        assert android.metrics()["dropped_format"] == 1

    def test_ios_tag_dropped(self, android, portrait_back_state, make_bgra_frame):
        """Verify IOS tags are dropped on ANDROID."""
        assert android.normalize(make_bgra_frame(), portrait_back_state) is None

    def test_no_planes_dropped(self, android, portrait_back_state):
        """Verify frames without planes are dropped."""
        raw = RawFrame(width=4, height=2, planes=(), format_tag=ANDROID_NV21, timestamp=0.0)
        assert android.normalize(raw, portrait_back_state) is None
        assert android.metrics()["dropped_layout"] == 1

    def test_unsupported_orientation_dropped(self, android, nv21_frame):
        """Verify frames with no rotation compensation are dropped."""
        state = DeviceOrientationState(
            device_orientation=DeviceOrientation.FACE_UP,
            sensor_orientation=90,
            facing=CameraFacing.BACK,
        )
        assert android.normalize(nv21_frame, state) is None
        assert android.metrics()["dropped_orientation"] == 1


class TestIOS:
    """IOS frames."""

    def test_bgra_single_plane(self, ios, make_bgra_frame):
        """Verify a single BGRA plane is passed through."""
        state = DeviceOrientationState(
            device_orientation=DeviceOrientation.PORTRAIT_UP,
            sensor_orientation=90,
            facing=CameraFacing.FRONT,
        )
        raw = make_bgra_frame(width=4, height=2)

        image = ios.normalize(raw, state)

        assert image.format == PixelFormat.BGRA8888
        assert image.rotation == ImageRotation.DEG_90
        assert image.bytes_per_row == 16
        assert len(image.data) == 32

    def test_bgra_multi_plane_dropped(self, ios, portrait_back_state):
        """Verify multi-plane BGRA frames are dropped."""
        raw = RawFrame(
            width=2,
            height=1,
            planes=(
                Plane(bytes=b"\x00" * 8, bytes_per_row=8),
                Plane(bytes=b"\x00" * 8, bytes_per_row=8),
            ),
            format_tag=IOS_BGRA,
            timestamp=0.0,
        )
        assert ios.normalize(raw, portrait_back_state) is None

    def test_nv21_tag_dropped(self, ios, portrait_back_state, nv21_frame):
        """Verify ANDROID tags are dropped on IOS."""
        assert ios.normalize(nv21_frame, portrait_back_state) is None


class TestCanonicalFormat:
    """Tests for the format lookup."""

    def test_known(self):
        """Verify canonical formats for known tags."""
        assert canonical_format(ANDROID_NV21, Platform.ANDROID) == PixelFormat.NV21
        assert canonical_format(IOS_BGRA, Platform.IOS) == PixelFormat.BGRA8888

    def test_unknown_raises(self):
        """Verify tags of the other platform raise UnrecognizedPixelFormat."""
        with pytest.raises(UnrecognizedPixelFormat):
            canonical_format(ANDROID_NV21, Platform.IOS)


class TestMetrics:
    """Tests for normalizer counters."""

    def test_counts(self, android, portrait_back_state, make_nv21_frame):
        """Verify drop counters per reason."""
        android.normalize(make_nv21_frame(), portrait_back_state)
        android.normalize(make_nv21_frame(), portrait_back_state)
        android.normalize(make_nv21_frame(format_tag=1), portrait_back_state)

        metrics = android.metrics()
        assert metrics["normalized"] == 2
        assert metrics["dropped_format"] == 1
        assert metrics["dropped_orientation"] == 0
