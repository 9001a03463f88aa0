from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: Optional[int] = None
    # Per-class suppression by default; boxes of different classes never compete.
    class_agnostic: bool = False


def _corners(boxes: np.ndarray) -> np.ndarray:
    cx, cy, w, h = boxes[..., 0], boxes[..., 1], boxes[..., 2], boxes[..., 3]
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=-1)


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU between one (cx, cy, w, h) box and an (N, 4) array of the same form.
    Pairs with an empty union get 0.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.float64)

    a = _corners(np.asarray(box, dtype=np.float64))
    b = _corners(np.asarray(boxes, dtype=np.float64).reshape(-1, 4))

    xx1 = np.maximum(a[0], b[:, 0])
    yy1 = np.maximum(a[1], b[:, 1])
    xx2 = np.minimum(a[2], b[:, 2])
    yy2 = np.minimum(a[3], b[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area_a = (a[2] - a[0]) * (a[3] - a[1])
    area_b = (b[:, 2] - b[:, 0]) * (b[:, 3] - b[:, 1])
    union = area_a + area_b - inter

    out = np.zeros_like(inter)
    np.divide(inter, union, out=out, where=union > 0)
    return out


def box_iou(a: Sequence[float], b: Sequence[float]) -> float:
    """IoU of two center+size boxes given as (cx, cy, w, h)."""
    return float(iou_one_to_many(np.asarray(a, dtype=np.float64), np.asarray([b], dtype=np.float64))[0])


def nms(boxes: np.ndarray, scores: np.ndarray, class_ids: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in cxcywh, scores and class_ids shape (N,).
    Returns indices of boxes to keep, highest score first.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    class_ids = np.asarray(class_ids)

    # Stable so equal scores keep their input order.
    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        if rest.size == 0:
            break
        iou = iou_one_to_many(boxes[i], boxes[rest])
        suppress = iou > cfg.iou_threshold
        if not cfg.class_agnostic:
            suppress &= class_ids[rest] == class_ids[i]
        order = rest[~suppress]

    return np.array(keep, dtype=np.int64)


def nms_detections(
    detections: Sequence[Detection],
    iou_threshold: float = 0.45,
    *,
    class_agnostic: bool = False,
) -> List[Detection]:
    """Run `nms` over `Detection` objects, returning the survivors by descending confidence."""
    if not detections:
        return []
    boxes = np.array([d.as_cxcywh() for d in detections], dtype=np.float64)
    scores = np.array([d.confidence for d in detections], dtype=np.float64)
    class_ids = np.array([d.class_id for d in detections], dtype=np.int64)
    keep = nms(boxes, scores, class_ids, NMSConfig(iou_threshold=iou_threshold, class_agnostic=class_agnostic))
    return [detections[int(i)] for i in keep]
