"""
Camera Source
=============

Push-style camera sources that deliver RawFrames to a callback.

This module provides:
    - CameraDescription: Static description of one camera
    - CameraSource: Protocol the session depends on
    - OpenCVCameraSource: cv2.VideoCapture reader on a daemon thread

Design Rules:
    - Frames are delivered on the capture thread, never the caller's
    - A failing callback never stops the stream (logged, frame lost)
    - Opening failures raise SessionStartError once, at start()
    - The latest BGR frame is kept for preview only
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

import cv2
import numpy as np

from pose_overlay.errors import SessionStartError
from pose_overlay.models.frame import RawFrame
from pose_overlay.models.orientation import (
    CameraFacing,
    DeviceOrientation,
    DeviceOrientationState,
    Platform,
)
from pose_overlay.stream.image_decoder import ImageDecodeError, encode_raw_frame


logger = logging.getLogger(__name__)


FrameCallback = Callable[[RawFrame, DeviceOrientationState], None]


@dataclass(frozen=True, slots=True)
class CameraDescription:
    """
    Static description of a camera.

    Attributes:
        name: Human-readable name
        device: cv2.VideoCapture device index or video file/URL
        facing: Lens direction (front cameras are mirrored on screen)
        sensor_orientation: Sensor mounting angle in degrees
    """

    name: str
    device: Union[int, str]
    facing: CameraFacing = CameraFacing.BACK
    sensor_orientation: int = 0


class CameraSource(Protocol):
    """
    Protocol for camera sources.

    Implementations push every captured frame, with the orientation
    snapshot taken at capture time, to the callback given to start().
    """

    description: CameraDescription

    @property
    def running(self) -> bool:
        ...

    def start(self, callback: FrameCallback) -> None:
        ...

    def stop(self) -> None:
        ...

    def orientation(self) -> DeviceOrientationState:
        ...


class CameraSourceMetrics:
    """Metrics for camera source observability."""

    __slots__ = (
        "frames_captured",
        "read_failures",
        "encode_errors",
        "callback_errors",
    )

    def __init__(self) -> None:
        self.frames_captured: int = 0
        self.read_failures: int = 0
        self.encode_errors: int = 0
        self.callback_errors: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_captured": self.frames_captured,
            "read_failures": self.read_failures,
            "encode_errors": self.encode_errors,
            "callback_errors": self.callback_errors,
        }


class OpenCVCameraSource:
    """
    Camera source backed by cv2.VideoCapture.

    Captured BGR frames are packed into the native layout of the
    configured platform (NV21 for ANDROID, BGRA for IOS) so the rest of
    the pipeline sees the same frames a handset would deliver.

    Attributes:
        description: Camera being read
        platform: Native layout to produce
        metrics: Operational metrics

    Example:
        source = OpenCVCameraSource(
            CameraDescription(name="webcam", device=0),
            platform=Platform.ANDROID,
        )
        source.start(session.on_frame)
        ...
        source.stop()
    """

    def __init__(
        self,
        description: CameraDescription,
        platform: Platform,
        device_orientation: DeviceOrientation = DeviceOrientation.PORTRAIT_UP,
        max_fps: float = 30.0,
        frame_width: Optional[int] = None,
        frame_height: Optional[int] = None,
        capture_factory: Callable[[Union[int, str]], "cv2.VideoCapture"] = cv2.VideoCapture,
    ) -> None:
        """
        Initialize camera source.

        Args:
            description: Camera to open
            platform: Native layout to produce
            device_orientation: Initial (simulated) device orientation
            max_fps: Upper bound on the read loop rate (0 = unbounded)
            frame_width: Requested capture width (None = driver default)
            frame_height: Requested capture height (None = driver default)
            capture_factory: Builds the capture object (injectable for tests)
        """
        self.description = description
        self.platform = platform
        self.max_fps = max_fps
        self.frame_width = frame_width
        self.frame_height = frame_height
        self._capture_factory = capture_factory

        self._device_orientation = device_orientation
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._latest_bgr: Optional[np.ndarray] = None

        self.metrics = CameraSourceMetrics()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def orientation(self) -> DeviceOrientationState:
        """Orientation snapshot for the next frame."""
        with self._lock:
            device_orientation = self._device_orientation
        return DeviceOrientationState(
            device_orientation=device_orientation,
            sensor_orientation=self.description.sensor_orientation,
            facing=self.description.facing,
        )

    def set_device_orientation(self, device_orientation: DeviceOrientation) -> None:
        """Simulate a device rotation."""
        with self._lock:
            self._device_orientation = device_orientation
        logger.info(f"Device orientation set to {device_orientation.value}")

    def latest_bgr(self) -> Optional[np.ndarray]:
        """Most recent captured frame, for preview display."""
        with self._lock:
            return self._latest_bgr

    def start(self, callback: FrameCallback) -> None:
        """
        Open the capture device and start the read thread.

        Args:
            callback: Receives (RawFrame, DeviceOrientationState)

        Raises:
            SessionStartError: If the device cannot be opened
        """
        if self.running:
            logger.warning(f"Camera {self.description.name} already running")
            return

        capture = self._capture_factory(self.description.device)
        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            raise SessionStartError(
                f"Cannot open camera {self.description.name} "
                f"(device={self.description.device!r})"
            )

        if self.frame_width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        if self.frame_height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(capture, callback),
            name=f"camera-{self.description.name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Camera {self.description.name} started "
            f"(facing={self.description.facing.value}, "
            f"sensor={self.description.sensor_orientation}°, "
            f"platform={self.platform.value})"
        )

    def stop(self, timeout: float = 2.0) -> None:
        """
        Stop the read thread. The thread releases the device on exit.

        Args:
            timeout: Seconds to wait for the thread to exit
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    f"Camera {self.description.name}: read thread did not exit "
                    f"within {timeout}s; device is released when it does"
                )
        self._thread = None
        logger.info(f"Camera {self.description.name} stopped")

    def _run(self, capture, callback: FrameCallback) -> None:
        """Read loop executed on the capture thread. Owns the capture."""
        try:
            self._read_loop(capture, callback)
        finally:
            capture.release()

    def _read_loop(self, capture, callback: FrameCallback) -> None:
        frame_interval = 1.0 / self.max_fps if self.max_fps > 0 else 0.0

        while not self._stop_event.is_set():
            started = time.monotonic()

            ok, bgr = capture.read()
            if not ok or bgr is None:
                self.metrics.read_failures += 1
                if isinstance(self.description.device, str):
                    logger.info(f"Camera {self.description.name}: end of stream")
                    break
                self._stop_event.wait(0.05)
                continue

            self.metrics.frames_captured += 1
            with self._lock:
                self._latest_bgr = bgr

            try:
                raw = encode_raw_frame(bgr, self.platform, timestamp=started)
            except ImageDecodeError as e:
                self.metrics.encode_errors += 1
                logger.error(f"Camera {self.description.name}: {e}")
                continue

            try:
                callback(raw, self.orientation())
            except Exception as e:
                self.metrics.callback_errors += 1
                logger.error(f"Frame callback failed: {e}")

            if frame_interval:
                elapsed = time.monotonic() - started
                self._stop_event.wait(max(0.0, frame_interval - elapsed))
