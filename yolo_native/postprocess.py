from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .nms import NMSConfig, nms
from .types import Detection


Labels = Union[Sequence[str], Mapping[int, str]]


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Configuration for YOLO post processing.
    """
    conf_threshold: float = 0.50
    iou_threshold: float = 0.45
    # Model input resolution as (width, height).
    input_size: Tuple[int, int] = (640, 640)
    # Empirical correction for this model's tendency to over-predict box extents.
    # Applied to width/height only; 1.0 disables it.
    box_shrink: float = 0.85
    # None infers the class count as rows - 4.
    num_classes: Optional[int] = None
    # True: raw layout is (4 + C, A), one row per attribute. False: (A, 4 + C).
    channels_first: bool = True
    # False when box rows are already in model-input pixels instead of [0, 1].
    normalized_boxes: bool = True
    apply_nms: bool = True
    class_agnostic_nms: bool = False
    max_detections: Optional[int] = None
    # Optional list of class IDs to keep; None keeps all.
    class_ids: Optional[Sequence[int]] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if len(self.input_size) != 2 or min(self.input_size) <= 0:
            raise ValueError("input_size must be a (width, height) pair of positive integers")
        if self.box_shrink <= 0:
            raise ValueError("box_shrink must be > 0")
        if self.num_classes is not None and self.num_classes <= 0:
            raise ValueError("num_classes must be > 0")
        if self.max_detections is not None and self.max_detections <= 0:
            raise ValueError("max_detections must be > 0")


def resolve_class_name(labels: Optional[Labels], class_id: int) -> str:
    if labels is not None:
        if isinstance(labels, Mapping):
            name = labels.get(class_id)
            if name is not None:
                return str(name)
        elif 0 <= class_id < len(labels):
            return str(labels[class_id])
    return f"class_{class_id}"


class YoloPostprocessor:
    """
    Post-process for anchor-layout YOLO exports (v8/v11 family):

    - (4 + C, A): e.g. 84 x 8400 for a 640x640 input, rows
      [cx, cy, w, h, class_0 ... class_C-1]
    - a leading batch axis of size 1 is accepted

    Class scores are independent confidences; only the argmax is kept per anchor.
    """

    def __init__(self, cfg: YoloPostConfig):
        self.cfg = cfg

    def process(
        self,
        preds: Optional[np.ndarray],
        orig_size: Tuple[int, int],
        labels: Optional[Labels] = None,
    ) -> List[Detection]:
        """
        Convert raw model output into filtered detections in original image coordinates.

        Args:
            preds: raw output for a single image, or None when no model is loaded
            orig_size: (width, height) of the original image
            labels: class names, by index (sequence) or by id (mapping)
        """

        if preds is None:
            return []

        boxes, scores, class_ids = self._decode(preds)
        if boxes.size == 0:
            return []

        # Strictly above threshold; degenerate boxes are not detections.
        keep = (scores > self.cfg.conf_threshold) & (boxes[:, 2] > 0) & (boxes[:, 3] > 0)
        boxes, scores, class_ids = boxes[keep], scores[keep], class_ids[keep]
        if boxes.size == 0:
            return []

        if self.cfg.class_ids is not None:
            mask = np.isin(class_ids, np.array(self.cfg.class_ids))
            boxes, scores, class_ids = boxes[mask], scores[mask], class_ids[mask]
            if boxes.size == 0:
                return []

        boxes = self._scale_boxes(boxes, orig_size)

        if self.cfg.apply_nms:
            keep_idx = nms(
                boxes,
                scores,
                class_ids,
                NMSConfig(
                    iou_threshold=self.cfg.iou_threshold,
                    max_detections=self.cfg.max_detections,
                    class_agnostic=self.cfg.class_agnostic_nms,
                ),
            )
        else:
            keep_idx = np.argsort(-scores, kind="stable")
            if self.cfg.max_detections is not None:
                keep_idx = keep_idx[: self.cfg.max_detections]

        return [
            Detection(
                class_id=int(class_ids[i]),
                class_name=resolve_class_name(labels, int(class_ids[i])),
                confidence=float(scores[i]),
                x=float(boxes[i, 0]),
                y=float(boxes[i, 1]),
                width=float(boxes[i, 2]),
                height=float(boxes[i, 3]),
            )
            for i in keep_idx
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _decode(self, preds: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Split the raw tensor into cxcywh boxes (A, 4), best scores (A,) and class ids (A,).
        """

        p = np.asarray(preds, dtype=np.float64)
        if p.size == 0:
            return np.empty((0, 4)), np.empty((0,)), np.empty((0,), dtype=np.int64)
        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ValueError(f"Unsupported YOLO output shape: {p.shape}")
        if not self.cfg.channels_first:
            p = p.T

        rows = p.shape[0]
        num_classes = self.cfg.num_classes if self.cfg.num_classes is not None else rows - 4
        if num_classes <= 0 or rows < 4 + num_classes:
            raise ValueError(f"Expected 4 box rows plus class scores, got shape {p.shape}.")

        boxes = p[0:4, :].T
        class_scores = np.nan_to_num(p[4 : 4 + num_classes, :], nan=0.0)
        # argmax keeps the first maximum on ties.
        class_ids = np.argmax(class_scores, axis=0)
        scores = class_scores[class_ids, np.arange(class_scores.shape[1])]
        return boxes, scores, class_ids.astype(np.int64)

    def _scale_boxes(self, boxes: np.ndarray, orig_size: Tuple[int, int]) -> np.ndarray:
        """
        Map boxes from model input space to the original image, per axis.
        """

        in_w, in_h = self.cfg.input_size
        orig_w, orig_h = orig_size
        scale_x = float(orig_w) / in_w
        scale_y = float(orig_h) / in_h

        out = boxes.astype(np.float64, copy=True)
        if self.cfg.normalized_boxes:
            out[:, [0, 2]] *= in_w
            out[:, [1, 3]] *= in_h
        out[:, [0, 2]] *= scale_x
        out[:, [1, 3]] *= scale_y
        out[:, 2:4] *= self.cfg.box_shrink
        return out


def postprocess(
    raw: Optional[np.ndarray],
    image_width: int,
    image_height: int,
    labels: Optional[Labels] = None,
    conf_threshold: float = 0.50,
    iou_threshold: float = 0.45,
) -> List[Detection]:
    """
    Decode, threshold, rescale and suppress a raw (4 + C, A) tensor in one call.
    """
    post = YoloPostprocessor(YoloPostConfig(conf_threshold=conf_threshold, iou_threshold=iou_threshold))
    return post.process(raw, orig_size=(image_width, image_height), labels=labels)
