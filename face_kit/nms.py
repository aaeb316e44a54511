from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import ShapeMismatchError
from .types import Candidate

DEFAULT_SCORE_THRESHOLD = 0.5
DEFAULT_IOU_THRESHOLD = 0.5

BoxLike = Union[Candidate, Sequence[float]]


@dataclass(frozen=True)
class NMSConfig:
    score_threshold: float = DEFAULT_SCORE_THRESHOLD
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
    # None keeps every survivor.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be within [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 (or None)")


def _xyxy(box: BoxLike) -> Tuple[float, float, float, float]:
    if isinstance(box, Candidate):
        return box.as_xyxy()
    x1, y1, x2, y2 = box[:4]
    return float(x1), float(y1), float(x2), float(y2)


def iou(a: BoxLike, b: BoxLike) -> float:
    """
    Intersection over union of two xyxy boxes.

    Inverted boxes count as zero area. A zero union yields 0.0, so degenerate
    boxes never suppress anything.
    """

    ax1, ay1, ax2, ay2 = _xyxy(a)
    bx1, by1, bx2, by2 = _xyxy(b)

    inter = max(0.0, min(ax2, bx2) - max(ax1, bx1)) * max(0.0, min(ay2, by2) - max(ay1, by1))
    area_a = max(0.0, ax2 - ax1) * max(0.0, ay2 - ay1)
    area_b = max(0.0, bx2 - bx1) * max(0.0, by2 - by1)
    union = area_a + area_b - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig = NMSConfig()) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, best score first.

    Only scores strictly above `cfg.score_threshold` take part. Ties in score
    keep their input order, so the result is deterministic.
    """

    boxes = np.asarray(boxes, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.size == 0 or scores.size == 0:
        return np.empty((0,), dtype=np.int64)
    boxes = boxes.reshape(-1, 4)
    if boxes.shape[0] != scores.shape[0]:
        raise ShapeMismatchError(f"Got {boxes.shape[0]} boxes but {scores.shape[0]} scores.")

    retained = np.flatnonzero(scores > cfg.score_threshold)
    if retained.size == 0:
        return np.empty((0,), dtype=np.int64)
    order = retained[np.argsort(-scores[retained], kind="stable")]

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = np.maximum(0.0, x2 - x1) * np.maximum(0.0, y2 - y1)

    keep: List[int] = []
    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(int(i))
        rest = order[1:]

        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
        union = areas[i] + areas[rest] - inter
        overlap = np.zeros_like(inter)
        np.divide(inter, union, out=overlap, where=union > 0.0)

        order = rest[overlap < cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(
    candidates: Sequence[Candidate],
    score_threshold: float = DEFAULT_SCORE_THRESHOLD,
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
    *,
    max_detections: Optional[int] = None,
) -> List[Candidate]:
    """
    Confidence filter + greedy NMS over candidates.

    Returns the survivors sorted by descending score; empty when nothing
    clears `score_threshold`.
    """

    if not candidates:
        return []
    cfg = NMSConfig(score_threshold=score_threshold, iou_threshold=iou_threshold, max_detections=max_detections)
    boxes = np.array([c.as_xyxy() for c in candidates], dtype=np.float64)
    scores = np.array([c.score for c in candidates], dtype=np.float64)
    return [candidates[i] for i in nms(boxes, scores, cfg)]


def best_detection(candidates: Sequence[Candidate], cfg: NMSConfig = NMSConfig()) -> Optional[Candidate]:
    survivors = suppress(candidates, cfg.score_threshold, cfg.iou_threshold, max_detections=1)
    return survivors[0] if survivors else None
