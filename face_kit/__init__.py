"""
Face detection post-processing helpers.

Turns camera frames into the detector's planar float tensor, decodes the
two-output (scores, boxes) face detector, runs confidence filtering + greedy
NMS, and maps the winning box to view pixels and pan/tilt angles. Only NumPy
and OpenCV are needed for the core; ONNX Runtime is loaded on demand.
"""

from .types import ActuatorCommand, Candidate, RawOutputs, Rectangle
from .errors import (
    ActuatorDeliveryError,
    FaceKitError,
    InferenceUnavailableError,
    InvalidFrameError,
    ShapeMismatchError,
)
from .encoder import FrameEncoder, encode
from .decode import decode, raw_outputs_from_session
from .nms import NMSConfig, best_detection, iou, nms, suppress
from .mapping import CoordinateMapper, to_actuator_command, to_rectangle
from .runtime import FacePipeline, load_pipeline, find_project_root, resolve_path
from .visualize import draw_rectangle

__all__ = [
    "ActuatorCommand",
    "Candidate",
    "RawOutputs",
    "Rectangle",
    "ActuatorDeliveryError",
    "FaceKitError",
    "InferenceUnavailableError",
    "InvalidFrameError",
    "ShapeMismatchError",
    "FrameEncoder",
    "encode",
    "decode",
    "raw_outputs_from_session",
    "NMSConfig",
    "best_detection",
    "iou",
    "nms",
    "suppress",
    "CoordinateMapper",
    "to_actuator_command",
    "to_rectangle",
    "FacePipeline",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "draw_rectangle",
]
