from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from face_kit.encoder import DEFAULT_INPUT_SIZE
from face_kit.nms import DEFAULT_IOU_THRESHOLD, DEFAULT_SCORE_THRESHOLD

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class TrackerProfile:
    model: str
    schema_version: int = SCHEMA_VERSION
    input_width: int = DEFAULT_INPUT_SIZE[0]
    input_height: int = DEFAULT_INPUT_SIZE[1]
    score_threshold: float = DEFAULT_SCORE_THRESHOLD
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
    # Front camera preview is mirrored, so boxes are flipped horizontally.
    mirror_horizontal: bool = True
    # Order of the frames handed to the encoder; OpenCV captures BGR.
    frame_channel_order: str = "bgr"
    # None maps into the captured frame size.
    view_width: Optional[int] = None
    view_height: Optional[int] = None
    actuator_url: Optional[str] = None
    actuator_timeout_s: float = 2.0
    onnx_providers: Optional[Tuple[str, ...]] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != SCHEMA_VERSION:
            raise ValueError(f"tracker profile schema_version must be {SCHEMA_VERSION}")
        if not self.model or not self.model.strip():
            raise ValueError("model must be a non-empty path")
        if self.input_width <= 0 or self.input_height <= 0:
            raise ValueError("input_width/input_height must be > 0")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be within [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.frame_channel_order not in ("rgb", "bgr"):
            raise ValueError("frame_channel_order must be 'rgb' or 'bgr'")
        if (self.view_width is None) != (self.view_height is None):
            raise ValueError("view_width and view_height must be set together")
        if self.view_width is not None and (self.view_width <= 0 or self.view_height <= 0):
            raise ValueError("view_width/view_height must be > 0")
        if self.actuator_url is not None and not self.actuator_url.strip():
            raise ValueError("actuator_url must not be empty if provided")
        if self.actuator_timeout_s <= 0:
            raise ValueError("actuator_timeout_s must be > 0")

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.input_width, self.input_height


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_bool(payload: Dict[str, Any], key: str, default: bool) -> bool:
    value = payload.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string if provided")
    return value


def _optional_providers(payload: Dict[str, Any]) -> Optional[Tuple[str, ...]]:
    value = payload.get("onnx_providers")
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError("onnx_providers must be a string or list of strings")
    cleaned = tuple(item.strip() for item in value if item.strip())
    if not cleaned:
        raise ValueError("onnx_providers must not be empty")
    return cleaned


def load_tracker_profile(path: Path) -> TrackerProfile:
    if not path.exists():
        raise FileNotFoundError(f"Tracker profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid tracker profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Tracker profile must be a JSON object")

    allowed = {
        "schema_version",
        "model",
        "input_width",
        "input_height",
        "score_threshold",
        "iou_threshold",
        "mirror_horizontal",
        "frame_channel_order",
        "view_width",
        "view_height",
        "actuator_url",
        "actuator_timeout_s",
        "onnx_providers",
        "notes",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown tracker profile keys: {unknown}")

    return TrackerProfile(
        schema_version=_optional_int(payload, "schema_version", SCHEMA_VERSION),
        model=_require_str(payload, "model"),
        input_width=_optional_int(payload, "input_width", DEFAULT_INPUT_SIZE[0]),
        input_height=_optional_int(payload, "input_height", DEFAULT_INPUT_SIZE[1]),
        score_threshold=_optional_number(payload, "score_threshold", DEFAULT_SCORE_THRESHOLD),
        iou_threshold=_optional_number(payload, "iou_threshold", DEFAULT_IOU_THRESHOLD),
        mirror_horizontal=_optional_bool(payload, "mirror_horizontal", True),
        frame_channel_order=_optional_str(payload, "frame_channel_order") or "bgr",
        view_width=_optional_int(payload, "view_width", None),
        view_height=_optional_int(payload, "view_height", None),
        actuator_url=_optional_str(payload, "actuator_url"),
        actuator_timeout_s=_optional_number(payload, "actuator_timeout_s", 2.0),
        onnx_providers=_optional_providers(payload),
        notes=_optional_str(payload, "notes"),
    )
