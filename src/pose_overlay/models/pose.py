"""
Pose Models
===========

Landmark, Pose and PoseSet types produced by estimation engines and
consumed by the skeleton renderer.

Coordinates:
    Landmark x/y are in SOURCE-IMAGE pixel space, i.e. the upright image
    the engine actually ran on. Engines may report points slightly outside
    the image bounds; consumers must tolerate that.

Indexing:
    LandmarkType values follow the 33-point MediaPipe / ML Kit body model,
    so an engine's landmark index converts directly with LandmarkType(i).
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Tuple


class LandmarkType(int, Enum):
    """Body joint identifiers (33-point body model)."""

    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    LEFT_MOUTH = 9
    RIGHT_MOUTH = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


@dataclass(frozen=True, slots=True)
class Landmark:
    """
    Single detected body joint.

    Attributes:
        type: Joint identifier
        x: Horizontal position in source-image pixels
        y: Vertical position in source-image pixels
        confidence: Detection confidence in [0, 1]
    """

    type: LandmarkType
    x: float
    y: float
    confidence: float = 1.0

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"confidence must be in [0, 1], got {self.confidence}"
            )


@dataclass(frozen=True, slots=True)
class Pose:
    """
    One detected body: at most one Landmark per LandmarkType.

    An absent LandmarkType means the joint was not detected this frame.
    The mapping is read-only.
    """

    landmarks: Mapping[LandmarkType, Landmark] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_landmarks(cls, landmarks: Iterable[Landmark]) -> "Pose":
        """
        Build a Pose from a sequence of landmarks.

        Args:
            landmarks: Landmarks, each type appearing at most once

        Returns:
            Pose keyed by landmark type

        Raises:
            ValueError: If a landmark type appears twice
        """
        by_type = {}
        for landmark in landmarks:
            if landmark.type in by_type:
                raise ValueError(f"Duplicate landmark: {landmark.type.name}")
            by_type[landmark.type] = landmark
        return cls(landmarks=MappingProxyType(by_type))

    def get(self, landmark_type: LandmarkType) -> Optional[Landmark]:
        return self.landmarks.get(landmark_type)

    def __contains__(self, landmark_type: object) -> bool:
        return landmark_type in self.landmarks

    def __iter__(self) -> Iterator[Landmark]:
        return iter(self.landmarks.values())

    def __len__(self) -> int:
        return len(self.landmarks)

    def __repr__(self) -> str:
        return f"Pose(landmarks={len(self.landmarks)})"


# All poses detected in one frame, in engine order. Replaced wholesale
# every frame; never merged across frames.
PoseSet = Tuple[Pose, ...]

EMPTY_POSE_SET: PoseSet = ()
