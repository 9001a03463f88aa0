"""
YOLO decode/NMS helpers plus a thin inference pipeline.

The post-processor works on NumPy arrays as emitted by LiteRT (TFLite) or
ONNX Runtime. OpenCV is only needed for image decoding, resizing and drawing;
inference runtimes are imported lazily by their backends.
"""

from .types import Detection
from .nms import NMSConfig, box_iou, nms, nms_detections
from .postprocess import YoloPostConfig, YoloPostprocessor, postprocess, resolve_class_name
from .preprocess import decode_image, stretch_resize, to_input_blob
from .runtime import DetectorPipeline, find_project_root, load_pipeline, resolve_path
from .metadata import load_labels
from .visualize import draw_detections

__all__ = [
    "Detection",
    "NMSConfig",
    "box_iou",
    "nms",
    "nms_detections",
    "YoloPostConfig",
    "YoloPostprocessor",
    "postprocess",
    "resolve_class_name",
    "decode_image",
    "stretch_resize",
    "to_input_blob",
    "DetectorPipeline",
    "find_project_root",
    "load_pipeline",
    "resolve_path",
    "load_labels",
    "draw_detections",
]
