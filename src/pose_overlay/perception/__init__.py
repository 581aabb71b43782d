"""
Perception Module
=================

Pose estimation engines for the overlay pipeline.

This module provides a black-box abstraction for pose estimation.
The pipeline consumes ONLY PoseSets from this module, never model output.

Components:
    - PoseEstimationPort: Protocol for pose engines
    - MockPoseEngine: Deterministic mock for testing
    - MediaPipePoseEngine: MediaPipe Pose (production)
"""

from pose_overlay.perception.engine import (
    PoseEstimationPort,
    MockPoseEngine,
    STANDING_TEMPLATE,
)
from pose_overlay.perception.mediapipe_engine import MediaPipePoseEngine


__all__ = [
    "PoseEstimationPort",
    "MockPoseEngine",
    "MediaPipePoseEngine",
    "STANDING_TEMPLATE",
]
