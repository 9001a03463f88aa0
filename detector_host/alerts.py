from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from yolo_native.types import Detection

LOGGER = logging.getLogger(__name__)

HIGH = "high"
LOW = "low"


@dataclass(frozen=True)
class ConfidenceAlertConfig:
    """
    Confidence bands that get an explicit log line per detection.

    The defaults (above 70%, below 40%) are empirical; keep them tunable.
    """

    high: float = 0.70
    low: float = 0.40

    def __post_init__(self) -> None:
        if not 0.0 <= self.low <= 1.0:
            raise ValueError("alert low must be in [0, 1]")
        if not 0.0 <= self.high <= 1.0:
            raise ValueError("alert high must be in [0, 1]")
        if self.low > self.high:
            raise ValueError("alert low must be <= alert high")


def classify_confidence(confidence: float, cfg: ConfidenceAlertConfig) -> Optional[str]:
    if confidence > cfg.high:
        return HIGH
    if confidence < cfg.low:
        return LOW
    return None


def log_confidence_alerts(
    detections: Iterable[Detection],
    cfg: ConfidenceAlertConfig,
    logger: Optional[logging.Logger] = None,
) -> List[Tuple[Detection, str]]:
    log = logger or LOGGER
    alerts: List[Tuple[Detection, str]] = []
    for det in detections:
        level = classify_confidence(det.confidence, cfg)
        if level is None:
            continue
        alerts.append((det, level))
        if level == HIGH:
            log.info("High confidence %s: %.1f%%", det.class_name, det.confidence * 100.0)
        else:
            log.warning("Low confidence %s: %.1f%%", det.class_name, det.confidence * 100.0)
    return alerts
