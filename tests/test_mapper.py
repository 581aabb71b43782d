"""
Coordinate Mapper Tests
=======================

Tests for source-image to canvas projection and mirroring.
"""

import pytest

from pose_overlay.errors import DegenerateCanvas
from pose_overlay.models.orientation import CameraFacing, ImageRotation, Platform, Size
from pose_overlay.models.pose import Landmark, LandmarkType
from pose_overlay.rendering.mapper import (
    CoordinateMapper,
    MirrorPolicy,
    mirror_x,
    translate_x,
    translate_y,
)
from pose_overlay.stream.normalizer import FormatNormalizer


CANVAS = Size(400, 800)
IMAGE = Size(1920, 1080)


class TestQuarterTurns:
    """Rotation 90/270."""

    def test_android_portrait_back_camera(self):
        """Verify a point from a rotated 1920x1080 buffer on a 400x800 canvas."""
        mapper = CoordinateMapper(
            canvas_size=CANVAS,
            image_size=IMAGE,
            rotation=ImageRotation.DEG_90,
            facing=CameraFacing.BACK,
            platform=Platform.ANDROID,
        )

        x, y = mapper.map_point(960, 540)

        assert x == pytest.approx(355.6, abs=0.05)
        assert y == pytest.approx(225.0)

    def test_android_270_matches_90(self):
        """Verify both quarter turns scale the same way."""
        args = (CANVAS, IMAGE)
        assert translate_x(960, *args, ImageRotation.DEG_270, CameraFacing.BACK) == \
            translate_x(960, *args, ImageRotation.DEG_90, CameraFacing.BACK)
        assert translate_y(540, *args, ImageRotation.DEG_270, CameraFacing.BACK) == \
            translate_y(540, *args, ImageRotation.DEG_90, CameraFacing.BACK)

    def test_ios_divides_by_width_and_height(self):
        """Verify IOS scales by the buffer as delivered."""
        x = translate_x(960, CANVAS, IMAGE, ImageRotation.DEG_90, CameraFacing.BACK, Platform.IOS)
        y = translate_y(540, CANVAS, IMAGE, ImageRotation.DEG_90, CameraFacing.BACK, Platform.IOS)
        assert x == pytest.approx(200.0)
        assert y == pytest.approx(400.0)


class TestUpright:
    """Rotation 0/180."""

    @pytest.mark.parametrize("platform", [Platform.ANDROID, Platform.IOS])
    @pytest.mark.parametrize("rotation", [ImageRotation.DEG_0, ImageRotation.DEG_180])
    def test_scales_by_width_and_height(self, platform, rotation):
        """Verify upright buffers scale by width and height."""
        canvas = Size(640, 480)
        image = Size(1280, 960)
        assert translate_x(320, canvas, image, rotation, CameraFacing.BACK, platform) == 160
        assert translate_y(480, canvas, image, rotation, CameraFacing.BACK, platform) == 240

    def test_round_trip(self):
        """Verify unmap reverses map."""
        mapper = CoordinateMapper(
            canvas_size=Size(640, 480),
            image_size=Size(1280, 960),
            rotation=ImageRotation.DEG_0,
            facing=CameraFacing.BACK,
        )
        x, y = mapper.unmap_point(*mapper.map_point(100.0, 700.0))
        assert x == pytest.approx(100.0)
        assert y == pytest.approx(700.0)


class TestMirroring:
    """Front camera previews are mirrored horizontally."""

    def test_front_camera_mirrored(self):
        """Verify front-camera points are mirrored by default."""
        mapper = CoordinateMapper(
            canvas_size=CANVAS,
            image_size=IMAGE,
            rotation=ImageRotation.DEG_90,
            facing=CameraFacing.FRONT,
        )

        x, y = mapper.map_point(960, 540)

        assert mapper.mirrored
        assert x == pytest.approx(400 - 355.5556, abs=1e-3)
        assert y == pytest.approx(225.0)

    def test_mirror_policy_never(self):
        """Verify MirrorPolicy.NEVER disables mirroring."""
        mapper = CoordinateMapper(
            canvas_size=CANVAS,
            image_size=IMAGE,
            rotation=ImageRotation.DEG_90,
            facing=CameraFacing.FRONT,
            mirror_policy=MirrorPolicy.NEVER,
        )
        assert not mapper.mirrored
        assert mapper.map_x(960) == pytest.approx(355.5556, abs=1e-3)

    def test_back_camera_not_mirrored(self):
        """Verify back-camera points are not mirrored."""
        assert translate_x(0, CANVAS, IMAGE, ImageRotation.DEG_0, CameraFacing.BACK) == 0
        assert translate_x(0, CANVAS, IMAGE, ImageRotation.DEG_0, CameraFacing.FRONT) == 400

    def test_mirror_is_involution(self):
        """Verify mirroring twice restores the point."""
        assert mirror_x(mirror_x(123.4, 400), 400) == pytest.approx(123.4)

    def test_front_round_trip(self):
        """Verify unmap reverses map with mirroring."""
        mapper = CoordinateMapper(
            canvas_size=CANVAS,
            image_size=IMAGE,
            rotation=ImageRotation.DEG_270,
            facing=CameraFacing.FRONT,
        )
        x, y = mapper.unmap_point(*mapper.map_point(300.0, 1500.0))
        assert x == pytest.approx(300.0)
        assert y == pytest.approx(1500.0)


class TestDegenerate:
    """Zero-sized canvases and images."""

    def test_empty_canvas(self):
        """Verify a zero-size canvas raises DegenerateCanvas."""
        with pytest.raises(DegenerateCanvas):
            CoordinateMapper(
                canvas_size=Size(0, 800),
                image_size=IMAGE,
                rotation=ImageRotation.DEG_0,
                facing=CameraFacing.BACK,
            )

    def test_empty_image(self):
        """Verify a zero-size image raises DegenerateCanvas."""
        with pytest.raises(DegenerateCanvas):
            CoordinateMapper(
                canvas_size=CANVAS,
                image_size=Size(1920, 0),
                rotation=ImageRotation.DEG_90,
                facing=CameraFacing.BACK,
            )

    def test_translate_with_empty_image(self):
        """Verify the translate functions reject a zero-size image."""
        with pytest.raises(DegenerateCanvas):
            translate_x(10, CANVAS, Size(0, 0), ImageRotation.DEG_0, CameraFacing.BACK)


class TestLandmarks:
    """Mapping landmarks."""

    def test_map_landmark(self):
        """Verify landmarks map to canvas points."""
        mapper = CoordinateMapper(
            canvas_size=CANVAS,
            image_size=IMAGE,
            rotation=ImageRotation.DEG_90,
            facing=CameraFacing.BACK,
        )
        landmark = Landmark(type=LandmarkType.NOSE, x=960, y=540, confidence=0.8)
        assert mapper.map_landmark(landmark) == mapper.map_point(960, 540)


class TestNormalizedFrameToCanvas:
    """Frame normalization feeds the mapper its image size and rotation."""

    def test_portrait_back_camera_frame(self, make_nv21_frame, portrait_back_state):
        """Verify a 1920x1080 NV21 frame from an upright back camera lands a point on the canvas."""
        raw = make_nv21_frame(width=1920, height=1080)
        image = FormatNormalizer(Platform.ANDROID).normalize(raw, portrait_back_state)

        assert image.rotation == ImageRotation.DEG_90
        assert image.size == IMAGE

        mapper = CoordinateMapper(CANVAS, image.size, image.rotation, CameraFacing.BACK)
        x, y = mapper.map_point(960, 540)

        assert x == pytest.approx(355.6, abs=0.05)
        assert y == pytest.approx(225.0)
