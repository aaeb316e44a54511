from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from .types import ActuatorCommand, Candidate, Rectangle

ANGLE_MIN = 0
ANGLE_MAX = 180


def to_rectangle(detection: Candidate, view_width: int, view_height: int, mirror_horizontal: bool) -> Rectangle:
    """
    Scale a normalized detection into view pixels.

    With `mirror_horizontal` (front camera preview) the x axis is flipped;
    y is never flipped.
    """

    if view_width <= 0 or view_height <= 0:
        raise ValueError(f"View size must be positive, got {view_width}x{view_height}")

    if mirror_horizontal:
        left = (1.0 - detection.x2) * view_width
        right = (1.0 - detection.x1) * view_width
    else:
        left = detection.x1 * view_width
        right = detection.x2 * view_width

    return Rectangle(
        left=float(left),
        top=float(detection.y1 * view_height),
        right=float(right),
        bottom=float(detection.y2 * view_height),
        view_width=int(view_width),
        view_height=int(view_height),
    )


def _to_angle(position: float, extent: int) -> int:
    if not math.isfinite(position):
        return ANGLE_MIN
    # int() truncates toward zero
    angle = int(position / extent * ANGLE_MAX)
    return min(ANGLE_MAX, max(ANGLE_MIN, angle))


def to_actuator_command(rectangle: Rectangle) -> ActuatorCommand:
    """
    Pan/tilt angles that point at the rectangle's center, one degree per
    1/180 of the view.
    """

    cx, cy = rectangle.center()
    return ActuatorCommand(
        angle1=_to_angle(cx, rectangle.view_width),
        angle2=_to_angle(cy, rectangle.view_height),
    )


@dataclass(frozen=True)
class CoordinateMapper:
    view_width: int
    view_height: int
    mirror_horizontal: bool = True

    def __post_init__(self) -> None:
        if self.view_width <= 0 or self.view_height <= 0:
            raise ValueError("view_width/view_height must be > 0")

    def to_rectangle(self, detection: Candidate) -> Rectangle:
        return to_rectangle(detection, self.view_width, self.view_height, self.mirror_horizontal)

    def to_actuator_command(self, rectangle: Rectangle) -> ActuatorCommand:
        return to_actuator_command(rectangle)

    def map(self, detection: Candidate) -> Tuple[Rectangle, ActuatorCommand]:
        rect = self.to_rectangle(detection)
        return rect, self.to_actuator_command(rect)
