"""
PoseOverlay
===========

Real-time human-pose skeleton overlay for live camera feeds.

This package provides the frame ingestion and rendering pipeline: raw,
platform-specific camera frames are normalized for a pose estimation
engine, admitted one at a time, and the detected landmarks are mapped
back onto the on-screen canvas and drawn as a skeleton.

Components:
    - stream: Rotation resolution, format normalization, admission control
    - perception: Pose estimation engines (mock, MediaPipe)
    - rendering: Coordinate mapping and skeleton drawing
    - session: Camera session tying the pipeline together

Example:
    from pose_overlay.session import PoseOverlaySession
    from pose_overlay.perception import MockPoseEngine

    # Service is started via the FastAPI application (see main.py)
    # or the OpenCV preview (see viewer.py)
"""

__version__ = "0.1.0"
__author__ = "PoseOverlay Project"

__all__ = [
    "__version__",
]
