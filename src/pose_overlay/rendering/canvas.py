"""
Render Surfaces
===============

Draw primitives and the surfaces that consume them.

The core never holds a long-lived handle to a UI canvas: the renderer
emits primitives to whatever RenderSurface the owning thread passes in.

Surfaces:
    - RecordingSurface: Keeps the last frame's commands (service, tests)
    - OpenCVSurface: Paints onto a numpy BGR image with cv2
"""

import logging
from dataclasses import dataclass
from typing import List, Protocol, Tuple, Union

import cv2
import numpy as np

from pose_overlay.models.output import DrawCommandModel


logger = logging.getLogger(__name__)


Point = Tuple[float, float]
Color = Tuple[int, int, int]  # RGB


@dataclass(frozen=True, slots=True)
class CircleCommand:
    """Filled circle at `center` with `radius`."""

    center: Point
    radius: float
    color: Color

    def to_model(self) -> DrawCommandModel:
        return DrawCommandModel(
            kind="circle",
            points=[self.center],
            size=self.radius,
            color=self.color,
        )


@dataclass(frozen=True, slots=True)
class LineCommand:
    """Stroked line from `start` to `end` with `width`."""

    start: Point
    end: Point
    width: float
    color: Color

    def to_model(self) -> DrawCommandModel:
        return DrawCommandModel(
            kind="line",
            points=[self.start, self.end],
            size=self.width,
            color=self.color,
        )


DrawCommand = Union[CircleCommand, LineCommand]


class RenderSurface(Protocol):
    """
    Protocol for render targets.

    Surfaces are single-writer: only the thread that owns the canvas
    may call these methods.
    """

    def clear(self) -> None:
        ...

    def draw_circle(self, center: Point, radius: float, color: Color) -> None:
        ...

    def draw_line(self, start: Point, end: Point, width: float, color: Color) -> None:
        ...

    def repaint(self) -> None:
        ...


def play(commands: List[DrawCommand], surface: RenderSurface) -> None:
    """Send draw commands to a surface in order."""
    for command in commands:
        if isinstance(command, CircleCommand):
            surface.draw_circle(command.center, command.radius, command.color)
        else:
            surface.draw_line(command.start, command.end, command.width, command.color)


class RecordingSurface:
    """
    Surface that records primitives instead of painting them.

    Attributes:
        commands: Primitives drawn since the last clear()
        repaint_count: Number of repaint() calls
    """

    def __init__(self) -> None:
        self.commands: List[DrawCommand] = []
        self.repaint_count: int = 0

    def clear(self) -> None:
        self.commands = []

    def draw_circle(self, center: Point, radius: float, color: Color) -> None:
        self.commands.append(CircleCommand(center=center, radius=radius, color=color))

    def draw_line(self, start: Point, end: Point, width: float, color: Color) -> None:
        self.commands.append(LineCommand(start=start, end=end, width=width, color=color))

    def repaint(self) -> None:
        self.repaint_count += 1

    @property
    def circles(self) -> List[CircleCommand]:
        return [c for c in self.commands if isinstance(c, CircleCommand)]

    @property
    def lines(self) -> List[LineCommand]:
        return [c for c in self.commands if isinstance(c, LineCommand)]


class OpenCVSurface:
    """
    Surface that paints onto a BGR image.

    The overlay is drawn on a transparent layer and composited over the
    background on repaint(), so clear() only resets the overlay.

    Attributes:
        background: Frame shown under the overlay (BGR, uint8)
        image: Composited output after repaint()
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Surface dimensions must be positive")

        self.width = width
        self.height = height
        self.background = np.zeros((height, width, 3), dtype=np.uint8)
        self.image = self.background.copy()
        self._overlay = np.zeros_like(self.background)
        self._mask = np.zeros((height, width), dtype=np.uint8)

    def set_background(self, bgr: np.ndarray) -> None:
        """Use `bgr` (resized to the surface) as the next background."""
        if bgr.shape[:2] != (self.height, self.width):
            bgr = cv2.resize(bgr, (self.width, self.height), interpolation=cv2.INTER_LINEAR)
        self.background = bgr

    def clear(self) -> None:
        self._overlay[:] = 0
        self._mask[:] = 0

    def draw_circle(self, center: Point, radius: float, color: Color) -> None:
        c = (int(round(center[0])), int(round(center[1])))
        r = max(1, int(round(radius)))
        cv2.circle(self._overlay, c, r, color[::-1], -1, cv2.LINE_AA)
        cv2.circle(self._mask, c, r, 255, -1, cv2.LINE_AA)

    def draw_line(self, start: Point, end: Point, width: float, color: Color) -> None:
        p1 = (int(round(start[0])), int(round(start[1])))
        p2 = (int(round(end[0])), int(round(end[1])))
        w = max(1, int(round(width)))
        cv2.line(self._overlay, p1, p2, color[::-1], w, cv2.LINE_AA)
        cv2.line(self._mask, p1, p2, 255, w, cv2.LINE_AA)

    def repaint(self) -> None:
        """Composite the overlay over the background into `image`."""
        image = self.background.copy()
        drawn = self._mask > 0
        image[drawn] = self._overlay[drawn]
        self.image = image
