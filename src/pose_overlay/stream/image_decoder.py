"""
Image Decoder
=============

Conversions between camera buffers and OpenCV/numpy matrices.

Design Rules:
    - This is the ONLY place in the codebase that touches pixel data
    - Validates buffer length against width, height and row stride
    - Fails fast on corrupt buffers (ImageDecodeError)
    - Returns RGB, the layout pose models expect

Upright Space:
    ANDROID buffers arrive in sensor orientation and are rotated by the
    resolved rotation before estimation. IOS buffers are already rotated
    by the camera stack and are used as delivered. Landmarks are reported
    in this upright space, which is what the coordinate mapper expects.
"""

import logging
import time
from typing import Optional

import cv2
import numpy as np

from pose_overlay.models.frame import (
    ANDROID_NV21,
    IOS_BGRA,
    NormalizedImage,
    PixelFormat,
    Plane,
    RawFrame,
)
from pose_overlay.models.orientation import ImageRotation, Platform, Size


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when a buffer cannot be decoded."""
    pass


_ROTATE_CODES = {
    ImageRotation.DEG_90: cv2.ROTATE_90_CLOCKWISE,
    ImageRotation.DEG_180: cv2.ROTATE_180,
    ImageRotation.DEG_270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def _strided_rows(
    image: NormalizedImage,
    rows: int,
    row_bytes: int,
) -> np.ndarray:
    """View `rows` rows of `row_bytes` each, skipping row padding."""
    stride = max(image.bytes_per_row, row_bytes)
    needed = stride * rows
    buf = np.frombuffer(image.data, dtype=np.uint8)

    if buf.size < needed:
        raise ImageDecodeError(
            f"Buffer too short for {image!r}: "
            f"got {buf.size} bytes, need {needed}"
        )

    return buf[:needed].reshape(rows, stride)[:, :row_bytes]


def decode_rgb(image: NormalizedImage) -> np.ndarray:
    """
    Decode a normalized buffer to an RGB matrix in buffer orientation.

    Args:
        image: NV21 or BGRA8888 normalized image

    Returns:
        RGB image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        ImageDecodeError: If the buffer is malformed
    """
    if image.width <= 0 or image.height <= 0:
        raise ImageDecodeError(f"Empty image: {image!r}")

    if image.format == PixelFormat.NV21:
        if image.width % 2 or image.height % 2:
            raise ImageDecodeError(
                f"NV21 requires even dimensions, got {image.width}x{image.height}"
            )
        yuv = _strided_rows(image, image.height * 3 // 2, image.width)
        rgb = cv2.cvtColor(np.ascontiguousarray(yuv), cv2.COLOR_YUV2RGB_NV21)

    elif image.format == PixelFormat.BGRA8888:
        rows = _strided_rows(image, image.height, image.width * 4)
        bgra = np.ascontiguousarray(rows).reshape(image.height, image.width, 4)
        rgb = cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGB)

    else:
        raise ImageDecodeError(f"Unsupported pixel format: {image.format}")

    if rgb.dtype != np.uint8:
        raise ImageDecodeError(f"Invalid dtype for {image!r}: {rgb.dtype}")

    return rgb


def rotate_upright(rgb: np.ndarray, rotation: ImageRotation) -> np.ndarray:
    """
    Rotate a matrix clockwise by `rotation`.

    Args:
        rgb: Image matrix
        rotation: Clockwise rotation

    Returns:
        Rotated matrix (the input itself for 0 degrees)
    """
    code = _ROTATE_CODES.get(rotation)
    if code is None:
        return rgb
    return cv2.rotate(rgb, code)


def upright_rgb(image: NormalizedImage, platform: Platform) -> np.ndarray:
    """
    Decode and orient a normalized image for pose estimation.

    Args:
        image: Normalized camera buffer
        platform: Platform the buffer came from

    Returns:
        RGB matrix in upright space
    """
    rgb = decode_rgb(image)
    if platform == Platform.ANDROID:
        rgb = rotate_upright(rgb, image.rotation)
    return rgb


def upright_size(image: NormalizedImage, platform: Platform) -> Size:
    """
    Size of the upright image without decoding it.

    Args:
        image: Normalized camera buffer
        platform: Platform the buffer came from

    Returns:
        Width/height of the space landmarks are reported in
    """
    if platform == Platform.ANDROID and image.rotation.swaps_axes:
        return Size(float(image.height), float(image.width))
    return Size(float(image.width), float(image.height))


def encode_raw_frame(
    bgr: np.ndarray,
    platform: Platform,
    timestamp: Optional[float] = None,
) -> RawFrame:
    """
    Pack an OpenCV BGR frame into the platform's native camera layout.

    ANDROID frames become two-plane NV21 (Y, then interleaved VU);
    IOS frames become single-plane BGRA.

    Args:
        bgr: BGR image as np.ndarray (H, W, 3), dtype=uint8
        platform: Layout to produce
        timestamp: Capture time; defaults to time.monotonic()

    Returns:
        RawFrame in the native layout

    Raises:
        ImageDecodeError: If the input is not a BGR uint8 image
    """
    if bgr is None or bgr.ndim != 3 or bgr.shape[2] != 3 or bgr.dtype != np.uint8:
        shape = None if bgr is None else bgr.shape
        raise ImageDecodeError(f"Expected BGR uint8 image, got shape {shape}")

    if timestamp is None:
        timestamp = time.monotonic()

    if platform == Platform.IOS:
        h, w = bgr.shape[:2]
        bgra = cv2.cvtColor(bgr, cv2.COLOR_BGR2BGRA)
        return RawFrame(
            width=w,
            height=h,
            planes=(Plane(bytes=bgra.tobytes(), bytes_per_row=w * 4),),
            format_tag=IOS_BGRA,
            timestamp=timestamp,
        )

    # NV21 needs even dimensions
    h, w = bgr.shape[:2]
    h -= h % 2
    w -= w % 2
    if h == 0 or w == 0:
        raise ImageDecodeError(f"Frame too small for NV21: {bgr.shape}")
    bgr = np.ascontiguousarray(bgr[:h, :w])

    i420 = cv2.cvtColor(bgr, cv2.COLOR_BGR2YUV_I420).reshape(-1)
    y_size = w * h
    chroma_size = y_size // 4
    u = i420[y_size:y_size + chroma_size]
    v = i420[y_size + chroma_size:y_size + 2 * chroma_size]

    vu = np.empty(2 * chroma_size, dtype=np.uint8)
    vu[0::2] = v
    vu[1::2] = u

    return RawFrame(
        width=w,
        height=h,
        planes=(
            Plane(bytes=i420[:y_size].tobytes(), bytes_per_row=w),
            Plane(bytes=vu.tobytes(), bytes_per_row=w),
        ),
        format_tag=ANDROID_NV21,
        timestamp=timestamp,
    )
