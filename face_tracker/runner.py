from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import cv2

from face_kit import CoordinateMapper, NMSConfig, load_pipeline
from face_kit.errors import InferenceUnavailableError

from .actuator import HttpActuatorSink
from .config import TrackerProfile, load_tracker_profile
from .driver import PipelineDriver
from .logs import setup_logging
from .overlay import OverlaySink

logger = logging.getLogger(__name__)

WINDOW_NAME = "face-tracker"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Track a face on a live camera and steer a pan/tilt actuator.")
    p.add_argument("--config", type=str, default=None, help="Tracker profile JSON. CLI flags override it.")
    p.add_argument("--model", type=str, default=None, help="Face detector .onnx (scores, boxes outputs).")
    src = p.add_mutually_exclusive_group()
    src.add_argument("--webcam", type=int, default=None, help="Camera index (default 0).")
    src.add_argument("--video", type=str, default=None, help="Video file, for offline runs.")
    p.add_argument("--score-threshold", type=float, default=None)
    p.add_argument("--iou-threshold", type=float, default=None)
    p.add_argument("--no-mirror", action="store_true", help="Camera is not mirrored (rear camera).")
    p.add_argument("--actuator-url", type=str, default=None, help="Servo endpoint, e.g. http://10.0.0.7/servo")
    p.add_argument("--actuator-timeout", type=float, default=None, help="Seconds per actuator request.")
    p.add_argument("--onnx-providers", type=str, default=None, help="Comma-separated ORT providers.")
    p.add_argument("--show", action="store_true", help="Show the preview window with the overlay.")
    p.add_argument("--max-frames", type=int, default=0, help="Stop after N captured frames (0 = no limit).")
    p.add_argument("--log-level", type=str, default="INFO")
    p.add_argument("--log-file", type=str, default=None)
    return p


def resolve_profile(args: argparse.Namespace) -> TrackerProfile:
    if args.config:
        profile = load_tracker_profile(Path(args.config))
    else:
        if not args.model:
            raise ValueError("Pass --model (or a --config profile that names one).")
        profile = TrackerProfile(model=args.model)

    overrides: Dict[str, Any] = {}
    if args.model:
        overrides["model"] = args.model
    if args.score_threshold is not None:
        overrides["score_threshold"] = float(args.score_threshold)
    if args.iou_threshold is not None:
        overrides["iou_threshold"] = float(args.iou_threshold)
    if args.no_mirror:
        overrides["mirror_horizontal"] = False
    if args.actuator_url:
        overrides["actuator_url"] = args.actuator_url
    if args.actuator_timeout is not None:
        overrides["actuator_timeout_s"] = float(args.actuator_timeout)
    if args.onnx_providers:
        overrides["onnx_providers"] = tuple(s.strip() for s in args.onnx_providers.split(",") if s.strip())
    return replace(profile, **overrides) if overrides else profile


def open_capture(*, video: Optional[str] = None, webcam: Optional[int] = None) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(video) if video is not None else cv2.VideoCapture(int(webcam or 0))
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open video source: {video if video is not None else webcam}")
    return cap


def run(
    profile: TrackerProfile,
    *,
    video: Optional[str] = None,
    webcam: Optional[int] = None,
    show: bool = False,
    max_frames: int = 0,
) -> int:
    pipeline = load_pipeline(
        profile.model,
        nms_cfg=NMSConfig(score_threshold=profile.score_threshold, iou_threshold=profile.iou_threshold),
        channel_order=profile.frame_channel_order,
        input_size=profile.input_size,
        onnx_providers=profile.onnx_providers,
    )
    try:
        cap = open_capture(video=video, webcam=webcam)
    except Exception:
        pipeline.close()
        raise

    actuator = None
    driver = None
    frames = 0
    try:
        ok, frame = cap.read()
        if not ok:
            raise RuntimeError("Video source produced no frames.")

        if profile.view_width is not None:
            view_w, view_h = profile.view_width, profile.view_height
        else:
            view_h, view_w = frame.shape[:2]
        mapper = CoordinateMapper(view_width=int(view_w), view_height=int(view_h), mirror_horizontal=profile.mirror_horizontal)

        overlay = OverlaySink()
        if profile.actuator_url:
            actuator = HttpActuatorSink(profile.actuator_url, timeout_s=profile.actuator_timeout_s)
        else:
            logger.info("No actuator_url configured; angles are computed but not sent.")

        driver = PipelineDriver(
            pipeline,
            mapper,
            ui_sink=overlay,
            actuator_sink=actuator.send if actuator is not None else None,
        )
        driver.start()

        while ok:
            frames += 1
            if not driver.submit(frame):
                break

            if show:
                preview = cv2.flip(frame, 1) if profile.mirror_horizontal else frame
                cv2.imshow(WINDOW_NAME, overlay.render(preview))
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break

            if max_frames and frames >= max_frames:
                break
            ok, frame = cap.read()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        if driver is not None:
            driver.stop()
        else:
            pipeline.close()
        if actuator is not None:
            actuator.close()
        cap.release()
        if show:
            cv2.destroyAllWindows()

    logger.info("Captured %d frames", frames)
    if driver is not None and driver.failure is not None:
        logger.error("Stopped early: %s", driver.failure)
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        profile = resolve_profile(args)
    except (ValueError, FileNotFoundError) as exc:
        parser.error(str(exc))

    try:
        return run(profile, video=args.video, webcam=args.webcam, show=args.show, max_frames=args.max_frames)
    except InferenceUnavailableError as exc:
        logger.error("Inference engine unavailable: %s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
