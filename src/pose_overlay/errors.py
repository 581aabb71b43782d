"""
Pipeline Errors
===============

Exception taxonomy for the pose overlay pipeline.

Per-frame errors (orientation, pixel format, estimation, canvas) are
recovered inside the pipeline: the frame is dropped or drawn as empty.
Only SessionStartError is ever raised to the caller of a session.
"""


class PoseOverlayError(Exception):
    """Base class for all pose overlay errors."""
    pass


class UnsupportedOrientation(PoseOverlayError):
    """Raised when the device orientation cannot be resolved to a rotation."""
    pass


class UnrecognizedPixelFormat(PoseOverlayError):
    """Raised when a raw frame's native format tag has no canonical form."""
    pass


class EstimationFailure(PoseOverlayError):
    """Raised when the pose estimation engine fails on a frame."""
    pass


class DegenerateCanvas(PoseOverlayError):
    """Raised when the render target or source image has a zero dimension."""
    pass


class SchedulerStateError(PoseOverlayError):
    """Raised on an invalid FrameScheduler transition."""
    pass


class SessionStartError(PoseOverlayError):
    """Raised once when the camera or the estimation engine cannot start."""
    pass
