"""
Typed failures raised by the detection pipeline.

Per-frame errors (`InvalidFrameError`, `ShapeMismatchError`) only abort the
frame being processed. `InferenceUnavailableError` means the session is gone
and the pipeline has to be rebuilt. `ActuatorDeliveryError` never leaves the
actuator sink.
"""

from __future__ import annotations


class FaceKitError(Exception):
    pass


class InvalidFrameError(FaceKitError, ValueError):
    pass


class ShapeMismatchError(FaceKitError, ValueError):
    pass


class InferenceUnavailableError(FaceKitError, RuntimeError):
    pass


class ActuatorDeliveryError(FaceKitError, RuntimeError):
    pass


PER_FRAME_ERRORS = (InvalidFrameError, ShapeMismatchError)
