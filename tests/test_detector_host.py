import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np

from detector_host.config import DetectorProfile
from detector_host.host import DetectorHost
from yolo_native.runtime import DetectorPipeline


def _single_anchor_tensor() -> np.ndarray:
    raw = np.zeros((1, 84, 8400), dtype=np.float32)
    raw[0, 0:4, 0] = [0.5, 0.5, 0.2, 0.2]
    raw[0, 4 + 1, 0] = 0.9
    return raw


def _png_bytes(width: int, height: int) -> bytes:
    ok, buf = cv2.imencode(".png", np.zeros((height, width, 3), dtype=np.uint8))
    assert ok
    return buf.tobytes()


class _FakeBackend:
    def __init__(self) -> None:
        self.closed = False
        self.blobs = []

    def infer(self, blob: np.ndarray) -> np.ndarray:
        self.blobs.append(blob.shape)
        return _single_anchor_tensor()

    def close(self) -> None:
        self.closed = True


class _FakeLoader:
    def __init__(self, error: Exception = None) -> None:
        self.error = error
        self.backends = []
        self.calls = []

    def __call__(self, model_path, *, backend=None, root=None, post_cfg=None, num_threads=4):
        self.calls.append({"model_path": model_path, "backend": backend, "num_threads": num_threads})
        if self.error is not None:
            raise self.error
        fake = _FakeBackend()
        self.backends.append(fake)
        return DetectorPipeline(fake.infer, backend=fake, backend_name="fake", input_layout="nhwc", post_cfg=post_cfg)


class TestDetectorHost(unittest.TestCase):
    def _labels_file(self) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "labels.txt"
        path.write_text("person\nbicycle\n", encoding="utf-8")
        return path

    def _host(self, loader: _FakeLoader, **profile_kwargs) -> DetectorHost:
        profile = DetectorProfile(model_path="model.tflite", **profile_kwargs)
        host = DetectorHost(profile, root=tempfile.gettempdir(), pipeline_loader=loader)
        self.addCleanup(host.close)
        return host

    def test_detect_before_load_returns_empty(self) -> None:
        host = self._host(_FakeLoader())
        self.assertFalse(host.is_loaded)
        self.assertEqual(host.detect_objects(_png_bytes(32, 32)), [])

    def test_load_and_detect(self) -> None:
        loader = _FakeLoader()
        host = self._host(loader, labels_path=str(self._labels_file()), num_threads=2)
        self.assertTrue(host.load_model())
        self.assertTrue(host.is_loaded)
        self.assertEqual(host.labels, ["person", "bicycle"])
        self.assertEqual(loader.calls[0]["num_threads"], 2)

        dets = host.detect_objects(_png_bytes(1280, 960))
        self.assertEqual(len(dets), 1)
        d = dets[0]
        self.assertEqual((d.class_id, d.class_name), (1, "bicycle"))
        self.assertAlmostEqual(d.x, 640.0, places=3)
        self.assertAlmostEqual(d.y, 480.0, places=3)
        self.assertAlmostEqual(d.width, 217.6, places=3)
        self.assertAlmostEqual(d.height, 163.2, places=3)
        self.assertEqual(loader.backends[0].blobs, [(1, 640, 640, 3)])

    def test_missing_labels_use_fallback(self) -> None:
        host = self._host(_FakeLoader(), labels_path="no_such_labels.txt", fallback_labels=("mando_xbox",))
        self.assertTrue(host.load_model())
        self.assertEqual(host.labels, ["mando_xbox"])

    def test_labels_failure_opens_no_model(self) -> None:
        loader = _FakeLoader()
        host = self._host(loader, labels_path="no_such_labels.txt")
        with self.assertLogs("detector_host.host", level="ERROR"):
            self.assertFalse(host.load_model())
        self.assertFalse(host.is_loaded)
        self.assertEqual(loader.backends, [])

    def test_load_failure_reports_false(self) -> None:
        host = self._host(_FakeLoader(error=FileNotFoundError("model.tflite")))
        with self.assertLogs("detector_host.host", level="ERROR"):
            self.assertFalse(host.load_model())
        self.assertFalse(host.is_loaded)

    def test_missing_model_with_default_loader_reports_false(self) -> None:
        profile = DetectorProfile(model_path="definitely_missing_model.tflite")
        with DetectorHost(profile, root=tempfile.gettempdir()) as host:
            with self.assertLogs("detector_host.host", level="ERROR"):
                self.assertFalse(host.load_model())

    def test_malformed_image_raises(self) -> None:
        host = self._host(_FakeLoader())
        self.assertTrue(host.load_model())
        with self.assertRaises(ValueError):
            host.detect_objects(b"not an image")
        with self.assertRaises(ValueError):
            host.detect_objects(b"")

    def test_submit_returns_futures(self) -> None:
        host = self._host(_FakeLoader())
        self.assertTrue(host.submit_load().result(timeout=5))
        dets = host.submit_detect(_png_bytes(640, 640)).result(timeout=5)
        self.assertEqual([d.class_id for d in dets], [1])
        self.assertEqual(dets[0].class_name, "class_1")

    def test_close_releases_model_once(self) -> None:
        loader = _FakeLoader()
        host = self._host(loader)
        self.assertTrue(host.load_model())
        host.close()
        host.close()
        self.assertFalse(host.is_loaded)
        self.assertTrue(loader.backends[0].closed)
        with self.assertRaises(RuntimeError):
            host.submit_load()

    def test_reload_releases_previous_model(self) -> None:
        loader = _FakeLoader()
        host = self._host(loader)
        self.assertTrue(host.load_model())
        self.assertTrue(host.load_model())
        self.assertTrue(loader.backends[0].closed)
        self.assertFalse(loader.backends[1].closed)


if __name__ == "__main__":
    unittest.main()
