"""
Per-frame orchestration: encode -> infer -> decode -> suppress -> map, then
fan the result out to the UI overlay and the actuator.

Threading:
    - `on_frame` is synchronous and can be called directly.
    - `start()` spawns one worker that pulls frames from a size-1 slot, so
      only the newest frame waits while another is being processed and no two
      frames ever hit the inference session at the same time.
    - `stop()` stops accepting frames, joins the worker and closes the
      pipeline (which releases the inference session).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np

from face_kit.errors import PER_FRAME_ERRORS, InferenceUnavailableError
from face_kit.mapping import CoordinateMapper
from face_kit.runtime import FacePipeline
from face_kit.types import ActuatorCommand, Candidate, Rectangle

from .slot import EMPTY, LatestFrameSlot

logger = logging.getLogger(__name__)

UiSink = Callable[[Rectangle], Any]
ActuatorSink = Callable[[ActuatorCommand], Any]
ErrorHandler = Callable[[Exception], Any]


@dataclass(frozen=True)
class FrameResult:
    detection: Candidate
    rectangle: Rectangle
    command: ActuatorCommand


@dataclass
class DriverStats:
    frames_submitted: int = 0
    frames_dropped: int = 0
    frames_processed: int = 0
    frames_failed: int = 0
    detections: int = 0


class PipelineDriver:
    def __init__(
        self,
        pipeline: FacePipeline,
        mapper: CoordinateMapper,
        *,
        ui_sink: Optional[UiSink] = None,
        actuator_sink: Optional[ActuatorSink] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self.pipeline = pipeline
        self.mapper = mapper
        self.ui_sink = ui_sink
        self.actuator_sink = actuator_sink
        self.on_error = on_error

        self._slot: LatestFrameSlot[np.ndarray] = LatestFrameSlot()
        self._thread: Optional[threading.Thread] = None
        self._stats_lock = threading.Lock()
        self._stats = DriverStats()
        self._failure: Optional[InferenceUnavailableError] = None
        self._stopped = False

    # ------------------------------------------------------------------ #
    # Synchronous path
    # ------------------------------------------------------------------ #
    def on_frame(self, frame: np.ndarray) -> Optional[FrameResult]:
        """
        Process one frame. Returns None (and updates no sink) when nothing
        clears the score threshold.

        Raises:
            InvalidFrameError / ShapeMismatchError: this frame only.
            InferenceUnavailableError: the session is gone; every later call
                raises too until a new driver is built.
        """

        if self._failure is not None:
            raise InferenceUnavailableError("Pipeline is unavailable after an earlier inference failure.") from self._failure

        try:
            detection = self.pipeline.detect(frame)
        except PER_FRAME_ERRORS:
            self._count(frames_failed=1)
            raise
        except InferenceUnavailableError as exc:
            self._failure = exc
            self._count(frames_failed=1)
            logger.error("Inference unavailable, pipeline halted: %s", exc)
            raise

        if detection is None:
            self._count(frames_processed=1)
            return None

        rect, command = self.mapper.map(detection)
        result = FrameResult(detection=detection, rectangle=rect, command=command)
        self._count(frames_processed=1, detections=1)
        logger.debug("Face score=%.3f rect=%s angles=(%d, %d)", detection.score, rect.as_ltrb(), command.angle1, command.angle2)
        self._publish(result)
        return result

    def _publish(self, result: FrameResult) -> None:
        if self.ui_sink is not None:
            try:
                self.ui_sink(result.rectangle)
            except Exception:
                logger.exception("UI sink failed")
        if self.actuator_sink is not None:
            try:
                self.actuator_sink(result.command)
            except Exception:
                logger.exception("Actuator sink failed")

    # ------------------------------------------------------------------ #
    # Worker path
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        if self._stopped:
            raise RuntimeError("PipelineDriver cannot be restarted after stop(); build a new one.")
        if self._thread is not None:
            logger.warning("PipelineDriver already running")
            return

        self._thread = threading.Thread(target=self._run, name="PipelineDriver", daemon=True)
        self._thread.start()
        logger.info(
            "Started pipeline driver (input=%dx%d, score>%.2f, iou<%.2f)",
            self.pipeline.encoder.width,
            self.pipeline.encoder.height,
            self.pipeline.nms_cfg.score_threshold,
            self.pipeline.nms_cfg.iou_threshold,
        )

    def submit(self, frame: np.ndarray) -> bool:
        """
        Hand a frame to the worker without blocking. A frame still waiting
        from an earlier call is replaced. Returns False once the driver is
        stopped or has failed.
        """

        if self._failure is not None:
            return False
        accepted = self._slot.put(frame)
        if accepted:
            self._count(frames_submitted=1)
        return accepted

    def _run(self) -> None:
        while True:
            frame = self._slot.take()
            if frame is EMPTY:
                break
            try:
                self.on_frame(frame)
            except PER_FRAME_ERRORS as exc:
                logger.warning("Skipped frame: %s", exc)
                self._report(exc)
            except InferenceUnavailableError as exc:
                self._report(exc)
                self._slot.close()
                break
            except Exception as exc:
                self._count(frames_failed=1)
                logger.exception("Unexpected failure while processing frame")
                self._report(exc)
        logger.debug("Pipeline driver worker exited")

    def _report(self, exc: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(exc)
        except Exception:
            logger.exception("on_error callback failed")

    def stop(self, timeout: float = 5.0, *, drain: bool = False) -> None:
        """
        Stop accepting frames and release the pipeline.

        With `drain`, a frame already waiting in the slot is still processed;
        otherwise it is discarded. The frame in flight always finishes (or is
        abandoned after `timeout`) before the session is closed.
        """

        if self._stopped:
            return
        self._stopped = True
        self._slot.close(discard_pending=not drain)
        try:
            if self._thread is not None and self._thread.is_alive():
                self._thread.join(timeout=timeout)
                if self._thread.is_alive():
                    logger.warning("Pipeline worker still busy after %.1fs; abandoning in-flight frame", timeout)
        finally:
            self.pipeline.close()

        stats = self.stats
        logger.info(
            "Pipeline driver stopped: submitted=%d dropped=%d processed=%d failed=%d detections=%d",
            stats.frames_submitted,
            stats.frames_dropped,
            stats.frames_processed,
            stats.frames_failed,
            stats.detections,
        )

    close = stop

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #
    def _count(self, **deltas: int) -> None:
        with self._stats_lock:
            for name, delta in deltas.items():
                setattr(self._stats, name, getattr(self._stats, name) + delta)

    @property
    def stats(self) -> DriverStats:
        with self._stats_lock:
            snapshot = DriverStats(**vars(self._stats))
        snapshot.frames_dropped = self._slot.dropped
        return snapshot

    @property
    def failure(self) -> Optional[InferenceUnavailableError]:
        return self._failure

    @property
    def accepting(self) -> bool:
        return not self._slot.closed

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "PipelineDriver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
