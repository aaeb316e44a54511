from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .errors import ShapeMismatchError
from .types import Candidate, RawOutputs

# Two-column convention: [background, face]
FACE_SCORE_COLUMN = 1


def _squeeze_batch(name: str, t: np.ndarray) -> np.ndarray:
    p = np.asarray(t)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise ShapeMismatchError(f"Batch > 1 is not supported for {name} (got shape {p.shape}).")
        p = p[0]
    if p.ndim != 2:
        raise ShapeMismatchError(f"Unsupported {name} shape: {p.shape}")
    return p


def raw_outputs_from_session(outputs: Sequence[np.ndarray]) -> RawOutputs:
    """
    Wrap an engine result list: index 0 is scores, index 1 is boxes.
    """

    if outputs is None or len(outputs) < 2:
        got = 0 if outputs is None else len(outputs)
        raise ShapeMismatchError(f"Expected 2 output tensors (scores, boxes), got {got}.")
    return RawOutputs(scores=np.asarray(outputs[0]), boxes=np.asarray(outputs[1]))


def decode(raw: RawOutputs, *, score_column: int = FACE_SCORE_COLUMN) -> List[Candidate]:
    """
    Turn the raw score/box tensors into candidates, one per row, in row order.

    No thresholding or sorting happens here; see `nms.suppress`.
    """

    scores = _squeeze_batch("scores", raw.scores)
    boxes = _squeeze_batch("boxes", raw.boxes)

    if scores.shape[0] != boxes.shape[0]:
        raise ShapeMismatchError(
            f"scores and boxes disagree on candidate count: {scores.shape[0]} vs {boxes.shape[0]}"
        )
    if boxes.shape[1] != 4:
        raise ShapeMismatchError(f"boxes must have 4 columns (x1, y1, x2, y2), got {boxes.shape[1]}")
    if score_column < 0 or scores.shape[1] <= score_column:
        raise ShapeMismatchError(
            f"scores has {scores.shape[1]} columns, cannot read column {score_column}"
        )

    face_scores = scores[:, score_column]
    return [
        Candidate(
            x1=float(x1),
            y1=float(y1),
            x2=float(x2),
            y2=float(y2),
            score=float(score),
        )
        for (x1, y1, x2, y2), score in zip(boxes, face_scores)
    ]
