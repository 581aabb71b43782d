"""
Format Normalizer
=================

Converts a platform-specific RawFrame into a NormalizedImage.

Design Rules:
    - Never raises on a bad frame: returns None and counts the drop
    - Does NOT resample, crop or rotate pixels
    - Does NOT retain or mutate the RawFrame
    - Plane bytes are concatenated in original order
"""

import logging
from typing import Dict, Optional

from pose_overlay.errors import UnrecognizedPixelFormat, UnsupportedOrientation
from pose_overlay.models.frame import (
    ANDROID_NV21,
    ANDROID_YUV_420_888,
    IOS_BGRA,
    NormalizedImage,
    PixelFormat,
    RawFrame,
)
from pose_overlay.models.orientation import DeviceOrientationState, Platform
from pose_overlay.stream.rotation import resolve_rotation


logger = logging.getLogger(__name__)


PLATFORM_FORMATS: Dict[Platform, Dict[int, PixelFormat]] = {
    Platform.ANDROID: {
        ANDROID_NV21: PixelFormat.NV21,
        ANDROID_YUV_420_888: PixelFormat.NV21,
    },
    Platform.IOS: {
        IOS_BGRA: PixelFormat.BGRA8888,
    },
}


def canonical_format(format_tag: int, platform: Platform) -> PixelFormat:
    """
    Map a platform-native format tag to its canonical form.

    Args:
        format_tag: Native pixel format identifier
        platform: Platform that produced the frame

    Returns:
        Canonical pixel format

    Raises:
        UnrecognizedPixelFormat: If the tag is unknown on this platform
    """
    pixel_format = PLATFORM_FORMATS[platform].get(format_tag)
    if pixel_format is None:
        raise UnrecognizedPixelFormat(
            f"Format tag {format_tag} not supported on {platform.value}"
        )
    return pixel_format


class FormatNormalizer:
    """
    Per-platform frame normalizer.

    Attributes:
        platform: Camera stack convention of the frames it receives

    Example:
        normalizer = FormatNormalizer(Platform.ANDROID)
        image = normalizer.normalize(raw_frame, orientation)
        if image is None:
            return  # frame dropped
    """

    def __init__(self, platform: Platform) -> None:
        self.platform = platform

        self._normalized_count: int = 0
        self._dropped_orientation: int = 0
        self._dropped_format: int = 0
        self._dropped_layout: int = 0

    def normalize(
        self,
        raw: RawFrame,
        orientation: DeviceOrientationState,
    ) -> Optional[NormalizedImage]:
        """
        Normalize one frame.

        Args:
            raw: Frame delivered by the camera source
            orientation: Orientation snapshot taken for this frame

        Returns:
            NormalizedImage, or None if the frame must be dropped
        """
        try:
            rotation = resolve_rotation(
                orientation.sensor_orientation,
                orientation.device_orientation,
                orientation.facing,
                self.platform,
            )
        except UnsupportedOrientation as e:
            self._dropped_orientation += 1
            logger.debug(f"Dropping {raw!r}: {e}")
            return None

        try:
            pixel_format = canonical_format(raw.format_tag, self.platform)
        except UnrecognizedPixelFormat as e:
            self._dropped_format += 1
            logger.debug(f"Dropping {raw!r}: {e}")
            return None

        if not raw.planes:
            self._dropped_layout += 1
            logger.debug(f"Dropping {raw!r}: no planes")
            return None

        # Only planar YUV may span several planes
        if len(raw.planes) != 1 and pixel_format != PixelFormat.NV21:
            self._dropped_layout += 1
            logger.debug(
                f"Dropping {raw!r}: {pixel_format.value} expects a single plane"
            )
            return None

        data = b"".join(plane.bytes for plane in raw.planes)

        self._normalized_count += 1
        return NormalizedImage(
            data=data,
            width=raw.width,
            height=raw.height,
            format=pixel_format,
            rotation=rotation,
            bytes_per_row=raw.planes[0].bytes_per_row,
            timestamp=raw.timestamp,
        )

    def metrics(self) -> dict:
        """
        Get normalizer metrics for observability.

        Returns:
            Dict with normalized count and drops per reason
        """
        return {
            "normalized": self._normalized_count,
            "dropped_orientation": self._dropped_orientation,
            "dropped_format": self._dropped_format,
            "dropped_layout": self._dropped_layout,
        }
