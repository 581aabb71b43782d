"""
Frame Data Models
=================

Raw and normalized frame representations for the ingestion pipeline.

Design Rules:
    - RawFrame is owned by the camera source for one callback only
    - NormalizedImage is the ONLY format passed to estimation engines
    - Both are immutable; plane data is held as bytes
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from pose_overlay.models.orientation import ImageRotation, Size


class PixelFormat(str, Enum):
    """
    Canonical pixel layouts accepted by estimation engines.

    Attributes:
        NV21: Planar YUV (full Y plane followed by interleaved VU)
        BGRA8888: Packed 32-bit BGRA
    """

    NV21 = "nv21"
    BGRA8888 = "bgra8888"


# Platform-native format tags
ANDROID_NV21 = 17
ANDROID_YUV_420_888 = 35
IOS_BGRA = 1111970369  # kCVPixelFormatType_32BGRA ('BGRA')


@dataclass(frozen=True, slots=True)
class Plane:
    """
    Single image plane as delivered by the camera.

    Attributes:
        bytes: Plane pixel data
        bytes_per_row: Row stride in bytes (may include padding)
    """

    bytes: bytes
    bytes_per_row: int

    def __repr__(self) -> str:
        return f"Plane(len={len(self.bytes)}, bytes_per_row={self.bytes_per_row})"


@dataclass(frozen=True, slots=True)
class RawFrame:
    """
    Platform-specific camera frame.

    Attributes:
        width: Buffer width in pixels (sensor orientation)
        height: Buffer height in pixels (sensor orientation)
        planes: Ordered image planes
        format_tag: Platform-native pixel format identifier
        timestamp: Capture time in seconds (monotonic clock)
    """

    width: int
    height: int
    planes: Tuple[Plane, ...]
    format_tag: int
    timestamp: float

    def __repr__(self) -> str:
        return (
            f"RawFrame({self.width}x{self.height}, "
            f"planes={len(self.planes)}, "
            f"format_tag={self.format_tag}, "
            f"timestamp={self.timestamp:.3f})"
        )


@dataclass(frozen=True, slots=True)
class NormalizedImage:
    """
    Contiguous image buffer plus the metadata an engine needs.

    Attributes:
        data: All plane bytes concatenated in plane order
        width: Buffer width in pixels
        height: Buffer height in pixels
        format: Canonical pixel format
        rotation: Rotation that brings the buffer upright
        bytes_per_row: Row stride of the first plane
        timestamp: Capture time carried over from the raw frame
    """

    data: bytes
    width: int
    height: int
    format: PixelFormat
    rotation: ImageRotation
    bytes_per_row: int
    timestamp: float = 0.0

    @property
    def size(self) -> Size:
        """Buffer size as reported to the coordinate mapper."""
        return Size(float(self.width), float(self.height))

    def __repr__(self) -> str:
        return (
            f"NormalizedImage({self.width}x{self.height}, "
            f"format={self.format.value}, "
            f"rotation={self.rotation.value}, "
            f"bytes={len(self.data)})"
        )
