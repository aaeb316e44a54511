from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .types import Rectangle

# OpenCV expects BGR.
OVERLAY_COLOR: Tuple[int, int, int] = (0, 0, 255)
OVERLAY_THICKNESS = 5


def draw_rectangle(
    image_bgr: np.ndarray,
    rect: Rectangle,
    *,
    color: Tuple[int, int, int] = OVERLAY_COLOR,
    thickness: int = OVERLAY_THICKNESS,
    label: Optional[str] = None,
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Stroke `rect` onto a copy of `image_bgr` and return the copy.

    The rectangle is in view coordinates; when the image size differs from
    the rectangle's view size it is rescaled to fit.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_rectangle(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]
    sx = w / rect.view_width
    sy = h / rect.view_height

    # Mirrored boxes can come back with left > right; normalize before drawing.
    xs = sorted((rect.left * sx, rect.right * sx))
    ys = sorted((rect.top * sy, rect.bottom * sy))
    x1i, x2i = (int(np.clip(round(v), 0, w - 1)) for v in xs)
    y1i, y2i = (int(np.clip(round(v), 0, h - 1)) for v in ys)

    cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=thickness)

    if label:
        (_, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 1)
        # Above the box if possible, else inside.
        y_text = y1i - baseline - thickness
        if y_text - th < 0:
            y_text = min(y1i + th + thickness, h - 1)
        cv2.putText(
            out,
            label,
            (x1i, y_text),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            color,
            thickness=1,
            lineType=cv2.LINE_AA,
        )

    return out
