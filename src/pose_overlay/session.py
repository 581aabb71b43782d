"""
Pose Overlay Session
====================

Explicit session context for one camera overlay.

The session owns:
    - the camera list and the active camera (with flipping)
    - the FormatNormalizer and FrameScheduler
    - the estimation engine and its single release
    - the latest OverlaySnapshot handed to the render thread

Threading Model:
    on_frame() runs on the camera's capture thread. It only decides
    accept/drop, normalizes, and hands the estimation coroutine to the
    session's event loop. Results are published as immutable snapshots;
    render() is called by whichever thread owns the canvas.

Error Policy:
    Per-frame problems (orientation, format, engine errors) never leave
    the session. Only SessionStartError is raised, from start().
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from pose_overlay.errors import DegenerateCanvas, SessionStartError
from pose_overlay.models.frame import NormalizedImage, RawFrame
from pose_overlay.models.orientation import (
    CameraFacing,
    DeviceOrientationState,
    ImageRotation,
    Platform,
    Size,
)
from pose_overlay.models.output import OverlayOutput, SizeModel
from pose_overlay.models.pose import EMPTY_POSE_SET, PoseSet
from pose_overlay.perception.engine import PoseEstimationPort
from pose_overlay.rendering.canvas import RenderSurface
from pose_overlay.rendering.mapper import CoordinateMapper, MirrorPolicy
from pose_overlay.rendering.skeleton import SkeletonRenderer
from pose_overlay.stream.camera import CameraDescription, CameraSource
from pose_overlay.stream.normalizer import FormatNormalizer
from pose_overlay.stream.scheduler import FrameScheduler


logger = logging.getLogger(__name__)


CameraFactory = Callable[[CameraDescription], CameraSource]
ResultListener = Callable[["OverlaySnapshot"], None]


@dataclass(frozen=True, slots=True)
class OverlaySnapshot:
    """
    Poses of one frame plus everything needed to map them.

    Attributes:
        pose_set: Detected poses (empty after an engine failure)
        image_size: Buffer size reported by the normalizer
        rotation: Resolved buffer rotation
        facing: Camera facing of the frame
        platform: Camera stack convention
        timestamp: Capture time of the frame
    """

    pose_set: PoseSet
    image_size: Size
    rotation: ImageRotation
    facing: CameraFacing
    platform: Platform
    timestamp: float

    def mapper(
        self,
        canvas_size: Size,
        mirror_policy: MirrorPolicy = MirrorPolicy.FRONT_CAMERA,
    ) -> CoordinateMapper:
        """
        Mapper from this frame's image to `canvas_size`.

        Raises:
            DegenerateCanvas: If the canvas or image has a zero dimension
        """
        return CoordinateMapper(
            canvas_size=canvas_size,
            image_size=self.image_size,
            rotation=self.rotation,
            facing=self.facing,
            platform=self.platform,
            mirror_policy=mirror_policy,
        )


class SessionMetrics:
    """Metrics for session observability."""

    __slots__ = (
        "frames_received",
        "estimations",
        "estimation_failures",
        "results_published",
        "results_discarded",
        "camera_flips",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.estimations: int = 0
        self.estimation_failures: int = 0
        self.results_published: int = 0
        self.results_discarded: int = 0
        self.camera_flips: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "estimations": self.estimations,
            "estimation_failures": self.estimation_failures,
            "results_published": self.results_published,
            "results_discarded": self.results_discarded,
            "camera_flips": self.camera_flips,
        }


class PoseOverlaySession:
    """
    One camera overlay session.

    Attributes:
        cameras: Available cameras, in flip order
        engine: Pose estimation engine (released by close())
        platform: Camera stack convention of the frames
        normalizer: RawFrame -> NormalizedImage
        scheduler: Admission gate in front of the engine
        renderer: Skeleton renderer used by render()
        mirror_policy: Front-camera mirroring policy
        metrics: Operational metrics

    Example:
        session = PoseOverlaySession(
            cameras=[CameraDescription("back", 0)],
            engine=MockPoseEngine(),
            platform=Platform.ANDROID,
            camera_factory=lambda d: OpenCVCameraSource(d, Platform.ANDROID),
        )
        session.start(loop)
        ...
        session.render(surface, Size(640, 480))  # on the UI thread
        ...
        session.close()
    """

    def __init__(
        self,
        cameras: Sequence[CameraDescription],
        engine: PoseEstimationPort,
        platform: Platform,
        camera_factory: Optional[CameraFactory] = None,
        scheduler: Optional[FrameScheduler] = None,
        renderer: Optional[SkeletonRenderer] = None,
        mirror_policy: MirrorPolicy = MirrorPolicy.FRONT_CAMERA,
        on_result: Optional[ResultListener] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize session. Nothing is opened until start().

        Args:
            cameras: Available cameras
            engine: Pose estimation engine
            platform: Camera stack convention
            camera_factory: Builds a CameraSource for a description
            scheduler: Admission gate (default: no throttle)
            renderer: Skeleton renderer (default style)
            mirror_policy: Front-camera mirroring policy
            on_result: Called on the event loop for every published snapshot
            clock: Monotonic clock for admission decisions
        """
        self.cameras: List[CameraDescription] = list(cameras)
        self.engine = engine
        self.platform = platform
        self.normalizer = FormatNormalizer(platform)
        self.scheduler = scheduler or FrameScheduler()
        self.renderer = renderer or SkeletonRenderer()
        self.mirror_policy = mirror_policy
        self.metrics = SessionMetrics()

        self._camera_factory = camera_factory
        self._on_result = on_result
        self._clock = clock

        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._source: Optional[CameraSource] = None
        self._camera_index: int = 0
        self._generation: int = 0
        self._latest: Optional[OverlaySnapshot] = None
        self._in_flight: int = 0
        self._idle = threading.Event()
        self._idle.set()
        self._closing: bool = False
        self._engine_closed: bool = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def camera_index(self) -> int:
        return self._camera_index

    @property
    def active_camera(self) -> Optional[CameraDescription]:
        if not self.cameras:
            return None
        return self.cameras[self._camera_index]

    @property
    def source(self) -> Optional[CameraSource]:
        return self._source

    @property
    def running(self) -> bool:
        return self._source is not None and self._source.running

    @property
    def latest(self) -> Optional[OverlaySnapshot]:
        with self._lock:
            return self._latest

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Bind to an event loop and open the active camera.

        Args:
            loop: Loop that runs estimation. Defaults to the running loop.

        Raises:
            SessionStartError: No cameras, no loop, or camera failed to open
        """
        if self._closing:
            raise SessionStartError("Session is closed")

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise SessionStartError("No event loop to run estimation on")
        self._loop = loop

        if not self.cameras:
            raise SessionStartError("No cameras available")

        self._open_camera()

    def _open_camera(self) -> None:
        """Build and start a source for the active camera."""
        if self._camera_factory is None:
            raise SessionStartError("No camera factory configured")

        description = self.cameras[self._camera_index]
        source = self._camera_factory(description)
        self.scheduler.reset()
        source.start(self.on_frame)
        self._source = source
        logger.info(
            f"Session streaming from camera {self._camera_index} "
            f"({description.name}, {description.facing.value})"
        )

    def _close_camera(self) -> None:
        """Stop the active source; in-flight results become stale."""
        with self._lock:
            self._generation += 1
        if self._source is not None:
            self._source.stop()
            self._source = None

    def stop(self) -> None:
        """
        Stop accepting frames and stop the camera.

        In-flight estimation is allowed to finish; its result is discarded.
        """
        self.scheduler.stop()
        self._close_camera()
        logger.info("Session stopped")

    def flip_camera(self) -> Optional[CameraDescription]:
        """
        Switch to the next camera in the list.

        Restarts the stream if it was running. The last overlay is
        cleared since it belongs to the previous camera.

        Returns:
            The new active camera, or None if there are no cameras

        Raises:
            SessionStartError: If the next camera fails to open
        """
        if not self.cameras:
            return None

        was_running = self._source is not None
        self._close_camera()

        self._camera_index = (self._camera_index + 1) % len(self.cameras)
        with self._lock:
            self._latest = None
        self.metrics.camera_flips += 1

        if was_running:
            self._open_camera()

        return self.cameras[self._camera_index]

    def close(self, timeout: float = 2.0) -> None:
        """
        Stop the session and release the engine exactly once.

        The engine is never released under a running estimation. When
        one is in flight, the call that finishes last releases it. Off
        the event loop thread, close() waits up to `timeout` seconds for
        that to happen.

        Args:
            timeout: Seconds to wait for in-flight estimation
        """
        self.stop()
        with self._lock:
            if self._closing:
                return
            self._closing = True
            release_now = self._in_flight == 0

        if release_now:
            self._release_engine()
            return

        logger.info("Session closing; waiting for in-flight estimation")
        if self._on_loop_thread():
            return
        if not self._idle.wait(timeout):
            logger.warning(
                f"Estimation still running after {timeout}s; "
                f"engine is released when it finishes"
            )

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _release_engine(self) -> None:
        """Close the engine unless it already is."""
        with self._lock:
            if self._engine_closed:
                return
            self._engine_closed = True
        self.engine.close()
        logger.info("Session closed")

    def _end_work(self) -> None:
        """Free the scheduler slot; the last call after close() releases the engine."""
        self.scheduler.end_work()
        with self._lock:
            self._in_flight -= 1
            idle = self._in_flight == 0
            release = idle and self._closing
        if release:
            self._release_engine()
        if idle:
            self._idle.set()

    # -------------------------------------------------------------------------
    # Frame path
    # -------------------------------------------------------------------------

    def _admit(
        self,
        raw: RawFrame,
        orientation: DeviceOrientationState,
    ) -> Optional[NormalizedImage]:
        """Gate and normalize a frame. On success the scheduler is BUSY."""
        self.metrics.frames_received += 1

        with self._lock:
            if not self.scheduler.try_acquire(self._clock()):
                return None
            self._in_flight += 1
            self._idle.clear()

        image = self.normalizer.normalize(raw, orientation)
        if image is None:
            self._end_work()
            return None

        return image

    def on_frame(self, raw: RawFrame, orientation: DeviceOrientationState) -> None:
        """
        Camera callback. Never blocks on estimation.

        Args:
            raw: Frame delivered by the camera
            orientation: Orientation snapshot taken for this frame
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            return

        with self._lock:
            generation = self._generation

        image = self._admit(raw, orientation)
        if image is None:
            return

        try:
            asyncio.run_coroutine_threadsafe(
                self._estimate(image, orientation.facing, generation),
                loop,
            )
        except RuntimeError as e:
            self._end_work()
            logger.warning(f"Could not schedule estimation: {e}")

    async def process_frame(
        self,
        raw: RawFrame,
        orientation: DeviceOrientationState,
    ) -> Optional[OverlaySnapshot]:
        """
        Run one frame through the pipeline on the current event loop.

        Args:
            raw: Frame delivered by the camera
            orientation: Orientation snapshot taken for this frame

        Returns:
            Published snapshot, or None if the frame was dropped or
            its result discarded
        """
        with self._lock:
            generation = self._generation

        image = self._admit(raw, orientation)
        if image is None:
            return None

        return await self._estimate(image, orientation.facing, generation)

    async def _estimate(
        self,
        image: NormalizedImage,
        facing: CameraFacing,
        generation: int,
    ) -> Optional[OverlaySnapshot]:
        """Estimate, publish, and release the scheduler slot."""
        try:
            self.metrics.estimations += 1
            try:
                pose_set = tuple(await self.engine.estimate(image))
            except Exception as e:
                self.metrics.estimation_failures += 1
                logger.warning(f"Estimation failed for {image!r}: {e}")
                pose_set = EMPTY_POSE_SET

            snapshot = OverlaySnapshot(
                pose_set=pose_set,
                image_size=image.size,
                rotation=image.rotation,
                facing=facing,
                platform=self.platform,
                timestamp=image.timestamp,
            )
            return self._publish(snapshot, generation)
        finally:
            self._end_work()

    def _publish(self, snapshot: OverlaySnapshot, generation: int) -> Optional[OverlaySnapshot]:
        """Make `snapshot` the latest unless the stream it came from ended."""
        with self._lock:
            stale = generation != self._generation or self.scheduler.stopped
            if not stale:
                self._latest = snapshot

        if stale:
            self.metrics.results_discarded += 1
            logger.debug("Discarding result from a stopped stream")
            return None

        self.metrics.results_published += 1
        if self._on_result is not None:
            try:
                self._on_result(snapshot)
            except Exception as e:
                logger.error(f"Result listener failed: {e}")
        return snapshot

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def render(self, surface: RenderSurface, canvas_size: Size) -> int:
        """
        Draw the latest overlay. Must run on the surface's owner thread.

        Args:
            surface: Render target
            canvas_size: Size of the render target

        Returns:
            Number of primitives drawn
        """
        snapshot = self.latest
        if snapshot is None:
            surface.clear()
            surface.repaint()
            return 0

        return self.renderer.render_frame(
            snapshot.pose_set,
            surface,
            canvas_size=canvas_size,
            image_size=snapshot.image_size,
            rotation=snapshot.rotation,
            facing=snapshot.facing,
            platform=snapshot.platform,
            mirror_policy=self.mirror_policy,
        )

    def overlay_output(self, canvas_size: Size) -> Optional[OverlayOutput]:
        """
        Latest overlay as service output for `canvas_size`.

        Returns:
            OverlayOutput, or None before the first result
        """
        snapshot = self.latest
        if snapshot is None:
            return None

        output = OverlayOutput(
            timestamp=snapshot.timestamp,
            canvas=SizeModel(width=max(0.0, canvas_size.width), height=max(0.0, canvas_size.height)),
            image=SizeModel(width=snapshot.image_size.width, height=snapshot.image_size.height),
            rotation=snapshot.rotation.value,
            facing=snapshot.facing,
            pose_count=len(snapshot.pose_set),
        )

        try:
            mapper = snapshot.mapper(canvas_size, self.mirror_policy)
        except DegenerateCanvas as e:
            output.error = str(e)
            return output

        output.commands = [
            command.to_model()
            for command in self.renderer.build_commands(snapshot.pose_set, mapper)
        ]
        return output

    def status(self) -> dict:
        """Combined metrics of the session and its components."""
        camera = self.active_camera
        return {
            "platform": self.platform.value,
            "running": self.running,
            "camera_index": self._camera_index,
            "camera": camera.name if camera else None,
            "mirror_policy": self.mirror_policy.value,
            "session": self.metrics.to_dict(),
            "scheduler": self.scheduler.metrics(),
            "normalizer": self.normalizer.metrics(),
        }
