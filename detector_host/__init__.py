"""
Hosting layer built on top of `yolo_native`.

`yolo_native` keeps the decode/NMS and inference runtime; this package adds
- ownership of the model handle and a single worker thread (host)
- the loadModel / detectObjects method dispatcher (channel)
- JSON detector profiles (config)
- confidence alert logging, JSON reports and the CLI runner
"""

from __future__ import annotations

from .alerts import ConfidenceAlertConfig, classify_confidence, log_confidence_alerts
from .channel import CHANNEL_NAME, DetectorChannel, MethodCall, MethodResult
from .config import DetectorProfile, load_detector_profile
from .host import DetectorHost
from .logging_utils import configure_logging
from .reporting import summarize_detections, write_detections_report

__all__ = [
    "ConfidenceAlertConfig",
    "classify_confidence",
    "log_confidence_alerts",
    "CHANNEL_NAME",
    "DetectorChannel",
    "MethodCall",
    "MethodResult",
    "DetectorProfile",
    "load_detector_profile",
    "DetectorHost",
    "configure_logging",
    "summarize_detections",
    "write_detections_report",
]
