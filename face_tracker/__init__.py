"""
Live face tracking built on top of `face_kit`.

`face_kit` owns the detector math (encode, decode, NMS, mapping); this package
wires it to a camera: the latest-frame driver, the HTTP servo sink, the
preview overlay, the JSON profile and the CLI runner.
"""

from __future__ import annotations

from .actuator import HttpActuatorSink
from .config import TrackerProfile, load_tracker_profile
from .driver import DriverStats, FrameResult, PipelineDriver
from .overlay import OverlaySink
from .slot import LatestFrameSlot

__all__ = [
    "HttpActuatorSink",
    "TrackerProfile",
    "load_tracker_profile",
    "DriverStats",
    "FrameResult",
    "PipelineDriver",
    "OverlaySink",
    "LatestFrameSlot",
]
