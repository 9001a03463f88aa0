"""
Hosting layer for one YOLO model handle.

The host owns the loaded pipeline exclusively: it is opened by `load_model()`
and released by `close()` (or on leaving a `with` block). Work submitted
through `submit_load()` / `submit_detect()` runs on a single dedicated worker
thread and is returned as a `concurrent.futures.Future`.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np

from yolo_native.metadata import load_labels
from yolo_native.preprocess import decode_image
from yolo_native.runtime import DetectorPipeline, load_pipeline, resolve_path
from yolo_native.types import Detection

from .alerts import log_confidence_alerts
from .config import DetectorProfile

LOGGER = logging.getLogger(__name__)

PipelineLoader = Callable[..., DetectorPipeline]


class DetectorHost:
    def __init__(
        self,
        profile: DetectorProfile,
        *,
        root: Optional[Union[str, Path]] = "auto",
        pipeline_loader: PipelineLoader = load_pipeline,
    ) -> None:
        self.profile = profile
        self.root = root
        self._pipeline_loader = pipeline_loader
        self._alert_cfg = profile.alert_config()
        self._pipeline: Optional[DetectorPipeline] = None
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="detector"
        )
        self.labels: List[str] = []

    def __enter__(self) -> "DetectorHost":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_loaded(self) -> bool:
        return self._pipeline is not None

    def load_model(self) -> bool:
        """
        Open the model and its labels. Returns False (and logs why) on failure.
        """
        # Labels first: a labels failure must not leave an opened model behind.
        try:
            labels = self._load_labels()
            pipeline = self._pipeline_loader(
                self.profile.model_path,
                backend=self.profile.backend,
                root=self.root,
                post_cfg=self.profile.post_config(),
                num_threads=self.profile.num_threads,
            )
        except (ImportError, OSError, RuntimeError, ValueError):
            LOGGER.exception("Failed to load model %s", self.profile.model_path)
            return False

        with self._lock:
            previous = self._pipeline
            self._pipeline = pipeline
            self.labels = labels
        if previous is not None:
            previous.close()

        LOGGER.info(
            "Model ready (backend=%s, %d label(s))",
            pipeline.backend_name,
            len(labels),
        )
        return True

    def _load_labels(self) -> List[str]:
        fallback = list(self.profile.fallback_labels)
        if self.profile.labels_path is None:
            return fallback
        path = resolve_path(self.profile.labels_path, root=self.root)
        return load_labels(path, fallback=fallback or None)

    def detect_objects(self, image_bytes: bytes) -> List[Detection]:
        """
        Decode `image_bytes` and run detection.

        Returns [] when no model is loaded; raises ValueError for undecodable bytes.
        """
        if not self.is_loaded:
            LOGGER.warning("detect_objects called before the model was loaded")
            return []
        image = decode_image(image_bytes)
        return self.detect_image(image)

    def detect_image(self, image_bgr: np.ndarray) -> List[Detection]:
        with self._lock:
            pipeline = self._pipeline
            if pipeline is None:
                LOGGER.warning("detect_image called before the model was loaded")
                return []
            h, w = image_bgr.shape[:2]
            start = time.perf_counter()
            detections = pipeline(image_bgr, labels=self.labels)
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        LOGGER.info("Detected %d object(s) in %dx%d image (%.1f ms)", len(detections), w, h, elapsed_ms)
        log_confidence_alerts(detections, self._alert_cfg)
        return detections

    def _submit(self, fn: Callable, *args) -> Future:
        if self._executor is None:
            raise RuntimeError("DetectorHost is closed.")
        return self._executor.submit(fn, *args)

    def submit_load(self) -> "Future[bool]":
        return self._submit(self.load_model)

    def submit_detect(self, image_bytes: bytes) -> "Future[List[Detection]]":
        return self._submit(self.detect_objects, image_bytes)

    def close(self) -> None:
        """Wait for in-flight work, then release the model handle. Safe to call twice."""
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        with self._lock:
            pipeline, self._pipeline = self._pipeline, None
        if pipeline is not None:
            pipeline.close()
            LOGGER.info("Model released")
