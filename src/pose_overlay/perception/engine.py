"""
Pose Estimation Engine
======================

Black-box abstraction over pose estimation backends.

This module provides the PoseEstimationPort protocol and the
MockPoseEngine implementation, a deterministic engine that needs no
model weights and does not decode pixels.

Design Rules:
    - Engines take a NormalizedImage and return a PoseSet
    - Landmarks are in upright source-image pixels
    - close() releases the engine; the session calls it exactly once
"""

import asyncio
import logging
import math
from typing import Dict, Iterable, Protocol, Tuple

from pose_overlay.errors import EstimationFailure
from pose_overlay.models.frame import NormalizedImage
from pose_overlay.models.orientation import Platform
from pose_overlay.models.pose import Landmark, LandmarkType, Pose, PoseSet
from pose_overlay.stream.image_decoder import upright_size


logger = logging.getLogger(__name__)


class PoseEstimationPort(Protocol):
    """
    Protocol for pose estimation backends.

    Implemented by:
        - MockPoseEngine (tests, demos)
        - MediaPipePoseEngine (production)
    """

    async def estimate(self, image: NormalizedImage) -> PoseSet:
        """
        Detect poses in one image.

        Args:
            image: Normalized camera buffer

        Returns:
            Poses in upright source-image pixel coordinates

        Raises:
            Exception: Any engine-internal failure
        """
        ...

    def close(self) -> None:
        """Release engine resources."""
        ...


# Standing figure facing the camera, normalized to the upright image.
# The subject's left side appears on the image's right.
STANDING_TEMPLATE: Dict[LandmarkType, Tuple[float, float]] = {
    LandmarkType.NOSE: (0.50, 0.15),
    LandmarkType.LEFT_EYE_INNER: (0.51, 0.13),
    LandmarkType.LEFT_EYE: (0.52, 0.13),
    LandmarkType.LEFT_EYE_OUTER: (0.53, 0.13),
    LandmarkType.RIGHT_EYE_INNER: (0.49, 0.13),
    LandmarkType.RIGHT_EYE: (0.48, 0.13),
    LandmarkType.RIGHT_EYE_OUTER: (0.47, 0.13),
    LandmarkType.LEFT_EAR: (0.54, 0.14),
    LandmarkType.RIGHT_EAR: (0.46, 0.14),
    LandmarkType.LEFT_MOUTH: (0.51, 0.18),
    LandmarkType.RIGHT_MOUTH: (0.49, 0.18),
    LandmarkType.LEFT_SHOULDER: (0.58, 0.25),
    LandmarkType.RIGHT_SHOULDER: (0.42, 0.25),
    LandmarkType.LEFT_ELBOW: (0.62, 0.38),
    LandmarkType.RIGHT_ELBOW: (0.38, 0.38),
    LandmarkType.LEFT_WRIST: (0.64, 0.50),
    LandmarkType.RIGHT_WRIST: (0.36, 0.50),
    LandmarkType.LEFT_PINKY: (0.65, 0.53),
    LandmarkType.RIGHT_PINKY: (0.35, 0.53),
    LandmarkType.LEFT_INDEX: (0.64, 0.54),
    LandmarkType.RIGHT_INDEX: (0.36, 0.54),
    LandmarkType.LEFT_THUMB: (0.63, 0.52),
    LandmarkType.RIGHT_THUMB: (0.37, 0.52),
    LandmarkType.LEFT_HIP: (0.55, 0.55),
    LandmarkType.RIGHT_HIP: (0.45, 0.55),
    LandmarkType.LEFT_KNEE: (0.55, 0.72),
    LandmarkType.RIGHT_KNEE: (0.45, 0.72),
    LandmarkType.LEFT_ANKLE: (0.55, 0.88),
    LandmarkType.RIGHT_ANKLE: (0.45, 0.88),
    LandmarkType.LEFT_HEEL: (0.54, 0.90),
    LandmarkType.RIGHT_HEEL: (0.46, 0.90),
    LandmarkType.LEFT_FOOT_INDEX: (0.57, 0.92),
    LandmarkType.RIGHT_FOOT_INDEX: (0.43, 0.92),
}


class MockPoseEngine:
    """
    Deterministic mock pose engine.

    Produces a standing figure in the upright image, swaying slowly
    from side to side so the overlay visibly follows new results.

    The mock simulates:
        - One or more bodies, spaced horizontally
        - Sinusoidal sway over `sway_period` calls
        - Optional missing joints
        - Optional latency and periodic failures

    Attributes:
        platform: Platform of the frames it receives
        pose_count: Bodies reported per frame
        calls: Number of estimate() calls so far
        closed: Whether close() has been called
    """

    def __init__(
        self,
        platform: Platform = Platform.ANDROID,
        pose_count: int = 1,
        missing: Iterable[LandmarkType] = (),
        confidence: float = 0.9,
        sway_amplitude: float = 0.03,
        sway_period: int = 60,
        latency: float = 0.0,
        fail_every: int = 0,
    ) -> None:
        """
        Initialize mock pose engine.

        Args:
            platform: Platform of incoming frames (decides upright size)
            pose_count: Number of bodies per frame
            missing: Joints never reported
            confidence: Confidence reported for every joint
            sway_amplitude: Horizontal sway as a fraction of image width
            sway_period: Calls per full sway cycle
            latency: Seconds to wait inside estimate()
            fail_every: Raise EstimationFailure every N calls (0 = never)
        """
        if pose_count < 0:
            raise ValueError("pose_count must be >= 0")

        self.platform = platform
        self.pose_count = pose_count
        self.missing = frozenset(missing)
        self.confidence = confidence
        self.sway_amplitude = sway_amplitude
        self.sway_period = max(1, sway_period)
        self.latency = latency
        self.fail_every = fail_every

        self.calls: int = 0
        self.closed: bool = False

        logger.info(
            f"MockPoseEngine initialized: poses={pose_count}, "
            f"latency={latency * 1000:.0f}ms, fail_every={fail_every}"
        )

    async def estimate(self, image: NormalizedImage) -> PoseSet:
        """
        Generate the mock poses for one image.

        Args:
            image: Normalized camera buffer (pixels are not read)

        Returns:
            `pose_count` poses in upright image pixels

        Raises:
            EstimationFailure: On every `fail_every`-th call, or when closed
        """
        if self.closed:
            raise EstimationFailure("MockPoseEngine is closed")

        self.calls += 1

        if self.latency > 0:
            await asyncio.sleep(self.latency)

        if self.fail_every and self.calls % self.fail_every == 0:
            raise EstimationFailure(f"Injected failure on call {self.calls}")

        size = upright_size(image, self.platform)
        phase = (2 * math.pi * self.calls) / self.sway_period
        sway = self.sway_amplitude * math.sin(phase)

        poses = []
        for index in range(self.pose_count):
            # Spread extra bodies to either side of the first
            offset = sway + 0.3 * ((index + 1) // 2) * (1 if index % 2 else -1)
            poses.append(
                Pose.from_landmarks(
                    Landmark(
                        type=landmark_type,
                        x=(nx + offset) * size.width,
                        y=ny * size.height,
                        confidence=self.confidence,
                    )
                    for landmark_type, (nx, ny) in STANDING_TEMPLATE.items()
                    if landmark_type not in self.missing
                )
            )
        return tuple(poses)

    def close(self) -> None:
        """Mark the engine closed."""
        self.closed = True
        logger.info("MockPoseEngine closed")
