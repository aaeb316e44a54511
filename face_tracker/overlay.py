from __future__ import annotations

import threading
from typing import Optional

import numpy as np

from face_kit.types import Rectangle
from face_kit.visualize import draw_rectangle


class OverlaySink:
    """
    Holds the most recent face rectangle for the preview window.

    The driver worker calls the sink; the UI (main) thread calls `render`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rect: Optional[Rectangle] = None
        self.updates = 0

    def __call__(self, rect: Rectangle) -> None:
        with self._lock:
            self._rect = rect
            self.updates += 1

    @property
    def latest(self) -> Optional[Rectangle]:
        with self._lock:
            return self._rect

    def clear(self) -> None:
        with self._lock:
            self._rect = None

    def render(self, image_bgr: np.ndarray, label: Optional[str] = None) -> np.ndarray:
        rect = self.latest
        if rect is None:
            return image_bgr
        return draw_rectangle(image_bgr, rect, label=label)
