from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from yolo_native.postprocess import YoloPostConfig

from .alerts import ConfidenceAlertConfig


@dataclass(frozen=True)
class DetectorProfile:
    model_path: str
    schema_version: int = 1
    labels_path: Optional[str] = None
    backend: Optional[str] = None
    num_threads: int = 4
    conf_threshold: float = 0.50
    iou_threshold: float = 0.45
    input_size: int = 640
    box_shrink: float = 0.85
    alert_high: float = 0.70
    alert_low: float = 0.40
    fallback_labels: Tuple[str, ...] = ()
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector profile schema_version must be 1")
        if not self.model_path.strip():
            raise ValueError("model_path must not be empty")
        if self.backend is not None and self.backend not in ("tflite", "onnxruntime"):
            raise ValueError("backend must be 'tflite' or 'onnxruntime'")
        if self.num_threads <= 0:
            raise ValueError("num_threads must be > 0")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if self.box_shrink <= 0:
            raise ValueError("box_shrink must be > 0")
        # Reuse the alert config's range checks.
        self.alert_config()

    def post_config(self) -> YoloPostConfig:
        return YoloPostConfig(
            conf_threshold=self.conf_threshold,
            iou_threshold=self.iou_threshold,
            input_size=(self.input_size, self.input_size),
            box_shrink=self.box_shrink,
        )

    def alert_config(self) -> ConfidenceAlertConfig:
        return ConfidenceAlertConfig(high=self.alert_high, low=self.alert_low)


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string if provided")
    return value


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: int) -> int:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_detector_profile(path: Path) -> DetectorProfile:
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = {
        "schema_version",
        "model_path",
        "labels_path",
        "backend",
        "num_threads",
        "conf_threshold",
        "iou_threshold",
        "input_size",
        "box_shrink",
        "alert_high",
        "alert_low",
        "fallback_labels",
        "notes",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    fallback = payload.get("fallback_labels", [])
    if not isinstance(fallback, list) or not all(isinstance(item, str) and item.strip() for item in fallback):
        raise ValueError("fallback_labels must be a list of non-empty strings")

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string if provided")

    return DetectorProfile(
        schema_version=_optional_int(payload, "schema_version", 1),
        model_path=_require_str(payload, "model_path"),
        labels_path=_optional_str(payload, "labels_path"),
        backend=_optional_str(payload, "backend"),
        num_threads=_optional_int(payload, "num_threads", 4),
        conf_threshold=_optional_number(payload, "conf_threshold", 0.50),
        iou_threshold=_optional_number(payload, "iou_threshold", 0.45),
        input_size=_optional_int(payload, "input_size", 640),
        box_shrink=_optional_number(payload, "box_shrink", 0.85),
        alert_high=_optional_number(payload, "alert_high", 0.70),
        alert_low=_optional_number(payload, "alert_low", 0.40),
        fallback_labels=tuple(item.strip() for item in fallback),
        notes=notes,
    )
