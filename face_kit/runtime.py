from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .decode import FACE_SCORE_COLUMN, decode, raw_outputs_from_session
from .encoder import DEFAULT_INPUT_SIZE, FrameEncoder
from .nms import NMSConfig, suppress
from .types import Candidate, RawOutputs

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Union[RawOutputs, Sequence[np.ndarray]]]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Walk up from `start` (default: cwd) to the first directory holding one of
    `markers`. Falls back to `start` itself.
    """

    p = Path(start).resolve() if start is not None else Path.cwd().resolve()
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        if any((parent / m).exists() for m in markers):
            return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths pass through; relative ones resolve against `root`, or the
    project root when `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p
    base = find_project_root() if root in ("auto", None) else Path(root).resolve()
    return (base / p).resolve()


class FacePipeline:
    """
    encode -> inference -> decode -> suppress, for one frame at a time.

    `infer_fn` is the inference engine call: it takes the (1, 3, H, W) tensor
    and returns `RawOutputs` (or the engine's [scores, boxes] list).
    """

    def __init__(
        self,
        infer_fn: InferFn,
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        encoder: FrameEncoder = FrameEncoder(),
        nms_cfg: NMSConfig = NMSConfig(),
        score_column: int = FACE_SCORE_COLUMN,
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.encoder = encoder
        self.nms_cfg = nms_cfg
        self.score_column = score_column

    def preprocess(self, frame: np.ndarray) -> np.ndarray:
        return self.encoder(frame)

    def infer(self, tensor: np.ndarray) -> RawOutputs:
        out = self._infer_fn(tensor)
        if isinstance(out, RawOutputs):
            return out
        return raw_outputs_from_session(out)

    def postprocess(self, raw: RawOutputs) -> List[Candidate]:
        candidates = decode(raw, score_column=self.score_column)
        return suppress(
            candidates,
            self.nms_cfg.score_threshold,
            self.nms_cfg.iou_threshold,
            max_detections=self.nms_cfg.max_detections,
        )

    def __call__(self, frame: np.ndarray) -> List[Candidate]:
        return self.postprocess(self.infer(self.preprocess(frame)))

    def detect(self, frame: np.ndarray) -> Optional[Candidate]:
        """The best surviving candidate for `frame`, or None."""
        survivors = self(frame)
        return survivors[0] if survivors else None

    def close(self) -> None:
        close = getattr(self.backend, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "FacePipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def load_pipeline(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    nms_cfg: NMSConfig = NMSConfig(),
    channel_order: str = "rgb",
    interpolation: str = "nearest",
    input_size: Optional[Tuple[int, int]] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
) -> FacePipeline:
    """
    Build an ONNX Runtime backed pipeline for a face detector on disk.

        pipe = load_pipeline("models/face_detector.onnx")

    Args:
        model_path: .onnx file; relative paths resolve against the project root by default
        input_size: (width, height) to encode frames at; None reads it from the model
            (falling back to 320x240 for dynamic inputs)
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Expected an .onnx model, got '{resolved.suffix}'")

    backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(providers=onnx_providers, input_name=onnx_input_name),
    )

    model_size = backend.input_size
    if input_size is None:
        input_size = model_size or DEFAULT_INPUT_SIZE
    elif model_size is not None and tuple(input_size) != model_size:
        backend.close()
        raise ValueError(f"input_size {tuple(input_size)} does not match the model input {model_size}")

    try:
        encoder = FrameEncoder(
            width=int(input_size[0]),
            height=int(input_size[1]),
            channel_order=channel_order,
            interpolation=interpolation,
        )
    except Exception:
        backend.close()
        raise
    logger.debug("Encoding frames at %dx%d (%s)", encoder.width, encoder.height, channel_order)
    return FacePipeline(
        backend.infer,
        backend=backend,
        backend_name="onnxruntime",
        encoder=encoder,
        nms_cfg=nms_cfg,
    )
