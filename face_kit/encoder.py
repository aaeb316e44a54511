from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import InvalidFrameError

# Input size of the bundled face detector (width, height).
DEFAULT_INPUT_SIZE: Tuple[int, int] = (320, 240)

_CHANNEL_ORDERS = ("rgb", "bgr")
_INTERPOLATIONS = {
    "nearest": "INTER_NEAREST",
    "linear": "INTER_LINEAR",
    "area": "INTER_AREA",
}


def _check_frame(frame: np.ndarray) -> Tuple[int, int]:
    if frame is None or not hasattr(frame, "shape"):
        raise InvalidFrameError("frame must be a NumPy array shaped (H, W, 3).")
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise InvalidFrameError(f"Expected frame shape (H, W, 3), got {getattr(frame, 'shape', None)}")
    h, w = frame.shape[:2]
    if h == 0 or w == 0:
        raise InvalidFrameError(f"Frame has zero width or height (shape {frame.shape}).")
    return int(w), int(h)


def encode(
    frame: np.ndarray,
    target_width: int,
    target_height: int,
    *,
    channel_order: str = "rgb",
    interpolation: str = "nearest",
) -> np.ndarray:
    """
    Stretch `frame` to (target_width, target_height) and pack it as a planar
    float32 tensor shaped (1, 3, H, W): all red samples, then green, then blue,
    each row-major and scaled to [0, 1].

    Args:
        frame: (H, W, 3) image, uint8 samples or floats already in [0, 1]
        channel_order: "rgb" or "bgr" (OpenCV capture order) for `frame`
        interpolation: "nearest" (unfiltered), "linear" or "area"
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for encode(). Install with `pip install opencv-python`.") from e

    if target_width <= 0 or target_height <= 0:
        raise ValueError(f"Target size must be positive, got {target_width}x{target_height}")
    if channel_order not in _CHANNEL_ORDERS:
        raise ValueError(f"channel_order must be one of {_CHANNEL_ORDERS}, got {channel_order!r}")
    if interpolation not in _INTERPOLATIONS:
        raise ValueError(f"interpolation must be one of {sorted(_INTERPOLATIONS)}, got {interpolation!r}")

    w, h = _check_frame(frame)

    img = frame
    if (w, h) != (target_width, target_height):
        flag = getattr(cv2, _INTERPOLATIONS[interpolation])
        img = cv2.resize(frame, (int(target_width), int(target_height)), interpolation=flag)

    if channel_order == "bgr":
        img = img[:, :, ::-1]

    if np.issubdtype(img.dtype, np.integer):
        blob = img.astype(np.float32) / 255.0
    else:
        blob = img.astype(np.float32)

    # HWC -> CHW, add batch
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])


@dataclass(frozen=True)
class FrameEncoder:
    width: int = DEFAULT_INPUT_SIZE[0]
    height: int = DEFAULT_INPUT_SIZE[1]
    channel_order: str = "rgb"
    interpolation: str = "nearest"

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("encoder width/height must be > 0")
        if self.channel_order not in _CHANNEL_ORDERS:
            raise ValueError(f"channel_order must be one of {_CHANNEL_ORDERS}")
        if self.interpolation not in _INTERPOLATIONS:
            raise ValueError(f"interpolation must be one of {sorted(_INTERPOLATIONS)}")

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return 1, 3, self.height, self.width

    def __call__(self, frame: np.ndarray) -> np.ndarray:
        return encode(
            frame,
            self.width,
            self.height,
            channel_order=self.channel_order,
            interpolation=self.interpolation,
        )
