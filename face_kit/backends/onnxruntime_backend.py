from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..decode import raw_outputs_from_session
from ..errors import InferenceUnavailableError, ShapeMismatchError
from ..types import RawOutputs

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input
    - scores_output/boxes_output: output names; None picks outputs 0 and 1
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    scores_output: Optional[str] = None
    boxes_output: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime session for the face detector.

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the
    (scores, boxes) output pair. The session is owned by this object: at most
    one `infer` runs at a time, and `close()` (or leaving a `with` block)
    releases it. Calls after close raise `InferenceUnavailableError`.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
            from onnxruntime.capi import onnxruntime_pybind11_state as ort_state  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        # ORT reports wrong input shapes and dtypes as InvalidArgument.
        self._argument_errors: Tuple[type, ...] = (ort_state.InvalidArgument,)
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)
        self._lock = threading.Lock()

        inputs = self.session.get_inputs()
        self.input_name = cfg.input_name or inputs[0].name
        self.input_shape = self._static_input_shape(inputs, self.input_name)

        output_names = [o.name for o in self.session.get_outputs()]
        if (cfg.scores_output is None or cfg.boxes_output is None) and len(output_names) < 2:
            raise ShapeMismatchError(
                f"Face detector must expose 2 outputs (scores, boxes), model has {output_names}"
            )
        self.output_names: List[str] = [
            cfg.scores_output or output_names[0],
            cfg.boxes_output or output_names[1],
        ]
        logger.info(
            "Loaded ONNX model %s (input=%s %s, outputs=%s, providers=%s)",
            self.model_path,
            self.input_name,
            self.input_shape,
            self.output_names,
            list(self.providers_in_use),
        )

    @staticmethod
    def _static_input_shape(inputs: Sequence[Any], name: str) -> Optional[Tuple[int, ...]]:
        for node in inputs:
            if node.name != name:
                continue
            shape = getattr(node, "shape", None)
            # Dynamic axes come back as strings or None.
            if shape and all(isinstance(d, int) for d in shape):
                return tuple(shape)
        return None

    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) baked into the model, when its input is static NCHW."""
        if self.input_shape is None or len(self.input_shape) != 4:
            return None
        return int(self.input_shape[3]), int(self.input_shape[2])

    @property
    def closed(self) -> bool:
        return self.session is None

    @property
    def providers_in_use(self) -> Sequence[str]:
        if self.session is None:
            return ()
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> RawOutputs:
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        with self._lock:
            if self.session is None:
                raise InferenceUnavailableError(f"Inference session for {self.model_path} is closed.")
            try:
                outputs = self.session.run(self.output_names, inputs)
            except self._argument_errors as e:
                raise ShapeMismatchError(f"Model {self.model_path.name} rejected input {getattr(blob, 'shape', None)}: {e}") from e
            except Exception as e:
                raise InferenceUnavailableError(f"Inference failed for {self.model_path.name}: {e}") from e
        return raw_outputs_from_session(outputs)

    def close(self) -> None:
        # Waits for an in-flight call before dropping the session.
        with self._lock:
            if self.session is None:
                return
            self.session = None
        logger.info("Released ONNX session for %s", self.model_path)

    def __enter__(self) -> "OnnxRuntimeBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
