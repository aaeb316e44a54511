import argparse
import json
import tempfile
import unittest
from pathlib import Path

from face_tracker.config import TrackerProfile, load_tracker_profile
from face_tracker.runner import build_parser, resolve_profile


class TestTrackerProfile(unittest.TestCase):
    def _write_profile(self, payload: dict) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_ok(self) -> None:
        path = self._write_profile(
            {
                "schema_version": 1,
                "model": "models/face_detector.onnx",
                "score_threshold": 0.6,
                "iou_threshold": 0.4,
                "mirror_horizontal": False,
                "actuator_url": "http://10.0.0.7/servo",
                "onnx_providers": ["CPUExecutionProvider"],
                "notes": "bench rig",
            }
        )
        profile = load_tracker_profile(path)
        self.assertIsInstance(profile, TrackerProfile)
        self.assertEqual(profile.model, "models/face_detector.onnx")
        self.assertEqual(profile.score_threshold, 0.6)
        self.assertEqual(profile.iou_threshold, 0.4)
        self.assertFalse(profile.mirror_horizontal)
        self.assertEqual(profile.actuator_url, "http://10.0.0.7/servo")
        self.assertEqual(profile.onnx_providers, ("CPUExecutionProvider",))
        self.assertEqual(profile.notes, "bench rig")

    def test_defaults(self) -> None:
        profile = load_tracker_profile(self._write_profile({"model": "m.onnx"}))
        self.assertEqual(profile.input_size, (320, 240))
        self.assertEqual(profile.score_threshold, 0.5)
        self.assertEqual(profile.iou_threshold, 0.5)
        self.assertTrue(profile.mirror_horizontal)
        self.assertEqual(profile.frame_channel_order, "bgr")
        self.assertIsNone(profile.actuator_url)
        self.assertIsNone(profile.view_width)

    def test_unknown_keys_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_tracker_profile(self._write_profile({"model": "m.onnx", "retries": 3}))

    def test_missing_model_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_tracker_profile(self._write_profile({"score_threshold": 0.5}))

    def test_invalid_values_rejected(self) -> None:
        bad = [
            {"model": "m.onnx", "score_threshold": 1.5},
            {"model": "m.onnx", "iou_threshold": "0.5"},
            {"model": "m.onnx", "mirror_horizontal": 1},
            {"model": "m.onnx", "view_width": 640},
            {"model": "m.onnx", "input_width": 0},
            {"model": "m.onnx", "schema_version": 2},
            {"model": "m.onnx", "frame_channel_order": "yuv"},
            {"model": "m.onnx", "onnx_providers": []},
        ]
        for payload in bad:
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    load_tracker_profile(self._write_profile(payload))

    def test_invalid_json(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_tracker_profile(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_tracker_profile(Path("/nonexistent/profile.json"))


class TestResolveProfile(unittest.TestCase):
    def _args(self, *argv: str) -> argparse.Namespace:
        return build_parser().parse_args(list(argv))

    def test_cli_only(self) -> None:
        profile = resolve_profile(self._args("--model", "m.onnx", "--no-mirror", "--score-threshold", "0.7"))
        self.assertEqual(profile.model, "m.onnx")
        self.assertFalse(profile.mirror_horizontal)
        self.assertEqual(profile.score_threshold, 0.7)

    def test_cli_overrides_profile(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text(json.dumps({"model": "a.onnx", "iou_threshold": 0.3}), encoding="utf-8")
        profile = resolve_profile(
            self._args("--config", str(path), "--actuator-url", "http://servo/", "--onnx-providers", "A, B")
        )
        self.assertEqual(profile.model, "a.onnx")
        self.assertEqual(profile.iou_threshold, 0.3)
        self.assertEqual(profile.actuator_url, "http://servo/")
        self.assertEqual(profile.onnx_providers, ("A", "B"))

    def test_model_required(self) -> None:
        with self.assertRaises(ValueError):
            resolve_profile(self._args())


if __name__ == "__main__":
    unittest.main()
