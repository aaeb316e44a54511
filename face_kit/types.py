from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np


@dataclass
class Candidate:
    """
    One decoded detector row, coordinates normalized to the model input space.

    The model does not guarantee x1 <= x2 / y1 <= y2; inverted boxes are kept
    as-is and simply have zero area.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    score: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def area(self) -> float:
        return max(0.0, self.x2 - self.x1) * max(0.0, self.y2 - self.y1)


@dataclass(frozen=True)
class RawOutputs:
    """
    The two tensors returned by the face detector.

    - scores: (N, C) or (1, N, C), C >= 2 (background, face, ...)
    - boxes: (N, 4) or (1, N, 4), normalized xyxy
    """

    scores: np.ndarray
    boxes: np.ndarray


@dataclass(frozen=True)
class Rectangle:
    left: float
    top: float
    right: float
    bottom: float
    view_width: int
    view_height: int

    def center(self) -> Tuple[float, float]:
        return (self.left + self.right) * 0.5, (self.top + self.bottom) * 0.5

    def as_ltrb(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom


@dataclass(frozen=True)
class ActuatorCommand:
    angle1: int
    angle2: int

    def __post_init__(self) -> None:
        for name in ("angle1", "angle2"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an int, got {type(value).__name__}")
            if not 0 <= value <= 180:
                raise ValueError(f"{name} must be within [0, 180], got {value}")

    def as_params(self) -> Dict[str, int]:
        return {"angle1": self.angle1, "angle2": self.angle2}
