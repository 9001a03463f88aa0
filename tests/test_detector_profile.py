import json
import tempfile
import unittest
from pathlib import Path

from detector_host.config import DetectorProfile, load_detector_profile


class TestDetectorProfile(unittest.TestCase):
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
                "model_path": "models/yolo11s_float32.tflite",
                "labels_path": "models/labels.txt",
                "conf_threshold": 0.6,
                "box_shrink": 1.0,
                "fallback_labels": ["mando_xbox"],
                "notes": "test",
            }
        )
        profile = load_detector_profile(path)
        self.assertIsInstance(profile, DetectorProfile)
        self.assertEqual(profile.model_path, "models/yolo11s_float32.tflite")
        self.assertEqual(profile.labels_path, "models/labels.txt")
        self.assertEqual(profile.conf_threshold, 0.6)
        self.assertEqual(profile.iou_threshold, 0.45)
        self.assertEqual(profile.fallback_labels, ("mando_xbox",))
        self.assertEqual(profile.notes, "test")

    def test_defaults_feed_post_and_alert_configs(self) -> None:
        profile = load_detector_profile(self._write_profile({"model_path": "m.tflite"}))
        post = profile.post_config()
        self.assertEqual(post.conf_threshold, 0.50)
        self.assertEqual(post.iou_threshold, 0.45)
        self.assertEqual(post.input_size, (640, 640))
        self.assertEqual(post.box_shrink, 0.85)
        alerts = profile.alert_config()
        self.assertEqual((alerts.high, alerts.low), (0.70, 0.40))

    def test_unknown_keys_rejected(self) -> None:
        path = self._write_profile({"model_path": "m.tflite", "extra": 123})
        with self.assertRaises(ValueError):
            load_detector_profile(path)

    def test_missing_model_path_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_profile(self._write_profile({"schema_version": 1}))

    def test_invalid_values_rejected(self) -> None:
        for payload in (
            {"model_path": "m.tflite", "conf_threshold": 1.2},
            {"model_path": "m.tflite", "num_threads": 0},
            {"model_path": "m.tflite", "num_threads": True},
            {"model_path": "m.tflite", "backend": "coreml"},
            {"model_path": "m.tflite", "alert_low": 0.9, "alert_high": 0.5},
            {"model_path": "m.tflite", "schema_version": 2},
            {"model_path": "m.tflite", "fallback_labels": "mando_xbox"},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    load_detector_profile(self._write_profile(payload))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_detector_profile(Path(tempfile.gettempdir()) / "no_such_profile.json")


if __name__ == "__main__":
    unittest.main()
