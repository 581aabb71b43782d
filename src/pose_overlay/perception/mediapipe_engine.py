"""
MediaPipe Pose Engine
=====================

Production pose engine backed by MediaPipe Pose.

This engine:
    - Decodes the normalized buffer to RGB and rotates it upright
    - Runs inference in a worker thread (never on the event loop)
    - Converts normalized landmarks to upright-image pixels

Design Rules:
    - Fail fast on missing dependency (ImportError at construction)
    - mediapipe is imported lazily so the package works without it
    - close() is idempotent
"""

import asyncio
import logging
from typing import Optional

import numpy as np

from pose_overlay.errors import EstimationFailure
from pose_overlay.models.frame import NormalizedImage
from pose_overlay.models.orientation import Platform
from pose_overlay.models.pose import EMPTY_POSE_SET, Landmark, LandmarkType, Pose, PoseSet
from pose_overlay.stream.image_decoder import upright_rgb


logger = logging.getLogger(__name__)


class MediaPipePoseEngine:
    """
    Pose engine using MediaPipe Pose (single body per frame).

    Attributes:
        platform: Platform of incoming frames
        model_complexity: MediaPipe model complexity (0, 1 or 2)
        min_detection_confidence: Person detection threshold
        min_tracking_confidence: Landmark tracking threshold
    """

    def __init__(
        self,
        platform: Platform = Platform.ANDROID,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        """
        Initialize MediaPipe pose engine.

        Args:
            platform: Platform of incoming frames
            model_complexity: 0 (lite), 1 (full) or 2 (heavy)
            min_detection_confidence: Person detection threshold
            min_tracking_confidence: Landmark tracking threshold

        Raises:
            ImportError: If mediapipe is not installed
        """
        self.platform = platform
        self.model_complexity = int(model_complexity)
        self.min_detection_confidence = float(min_detection_confidence)
        self.min_tracking_confidence = float(min_tracking_confidence)

        try:
            import mediapipe as mp
        except ImportError:
            raise ImportError(
                "mediapipe is required for MediaPipePoseEngine. "
                "Install with: pip install 'pose-overlay[mediapipe]'"
            )

        self._pose = mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=self.model_complexity,
            enable_segmentation=False,
            smooth_landmarks=True,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )
        self._inference_count: int = 0

        logger.info(
            f"MediaPipePoseEngine initialized: complexity={self.model_complexity}, "
            f"platform={platform.value}"
        )

    async def estimate(self, image: NormalizedImage) -> PoseSet:
        """
        Detect the pose in one image.

        Args:
            image: Normalized camera buffer

        Returns:
            Zero or one pose in upright image pixels

        Raises:
            EstimationFailure: If the engine is closed
            ImageDecodeError: If the buffer is malformed
        """
        if self._pose is None:
            raise EstimationFailure("MediaPipePoseEngine is closed")

        rgb = upright_rgb(image, self.platform)
        result = await asyncio.to_thread(self._pose.process, rgb)
        self._inference_count += 1

        return self._to_pose_set(result, rgb)

    def _to_pose_set(self, result, rgb: np.ndarray) -> PoseSet:
        """Convert a MediaPipe result to pixel-space poses."""
        landmarks = getattr(result, "pose_landmarks", None)
        if landmarks is None:
            return EMPTY_POSE_SET

        h, w = rgb.shape[:2]
        converted = []
        for index, point in enumerate(landmarks.landmark):
            try:
                landmark_type = LandmarkType(index)
            except ValueError:
                continue
            visibility = float(getattr(point, "visibility", 0.0) or 0.0)
            converted.append(
                Landmark(
                    type=landmark_type,
                    x=float(point.x) * w,
                    y=float(point.y) * h,
                    confidence=min(1.0, max(0.0, visibility)),
                )
            )
        return (Pose.from_landmarks(converted),)

    @property
    def inference_count(self) -> int:
        return self._inference_count

    def close(self) -> None:
        """Release the MediaPipe graph."""
        pose: Optional[object] = self._pose
        self._pose = None
        if pose is not None:
            pose.close()
            logger.info("MediaPipePoseEngine closed")
