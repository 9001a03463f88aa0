from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .postprocess import Labels, YoloPostConfig, YoloPostprocessor
from .preprocess import to_input_blob
from .types import Detection


PathLike = Union[str, Path]
LOGGER = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Walk up from `start` (default: cwd) to the first directory holding one of `markers`.
    Falls back to `start` itself.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        if any((parent / m).exists() for m in markers):
            return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths are returned as-is; relative ones resolve against `root`,
    or against the project root when `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p
    base = find_project_root() if root in ("auto", None) else Path(root).resolve()
    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]


class DetectorPipeline:
    """
    preprocess (stretch to model input) -> inference -> decode/NMS.

    Expects BGR images (OpenCV-style) and returns `Detection`s in original
    image coordinates. The pipeline owns its backend; call `close()` to
    release it.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        input_layout: str = "nhwc",
        post_cfg: YoloPostConfig = YoloPostConfig(),
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.input_layout = input_layout
        self.post_cfg = post_cfg
        self.post = YoloPostprocessor(post_cfg)

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        blob = to_input_blob(image_bgr, self.post_cfg.input_size, layout=self.input_layout)
        orig_h, orig_w = image_bgr.shape[:2]
        return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h))

    def __call__(self, image_bgr: np.ndarray, labels: Optional[Labels] = None) -> List[Detection]:
        prep = self.preprocess(image_bgr)
        preds = self._infer_fn(prep.blob)
        return self.post.process(preds, orig_size=prep.orig_size, labels=labels)

    def close(self) -> None:
        close = getattr(self.backend, "close", None)
        if callable(close):
            close()
        self.backend = None


def infer_backend_name(model_path: PathLike) -> str:
    suffix = Path(model_path).suffix.lower()
    if suffix == ".tflite":
        return "tflite"
    if suffix == ".onnx":
        return "onnxruntime"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_pipeline(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    post_cfg: YoloPostConfig = YoloPostConfig(),
    num_threads: int = 4,
    onnx_providers: Optional[Sequence[str]] = None,
) -> DetectorPipeline:
    """
    Create a pipeline for a model on disk.

        pipe = load_pipeline("models/yolo11s_float32.tflite")

    Args:
        model_path: model file; relative paths resolve against project root by default
        backend: "tflite", "onnxruntime", or None to infer from extension
        root: base directory for resolving relative model paths ("auto" uses best-effort project root)
    """

    resolved = resolve_path(model_path, root=root)
    chosen = (backend or infer_backend_name(resolved)).lower()
    LOGGER.info("Loading %s model from %s", chosen, resolved)

    if chosen == "tflite":
        from .backends.tflite_backend import TFLiteBackend, TFLiteBackendConfig

        tfl_backend = TFLiteBackend(resolved, TFLiteBackendConfig(num_threads=num_threads))
        return DetectorPipeline(
            tfl_backend.infer,
            backend=tfl_backend,
            backend_name="tflite",
            input_layout=tfl_backend.input_layout,
            post_cfg=post_cfg,
        )

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        ort_backend = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(providers=onnx_providers, intra_op_num_threads=num_threads),
        )
        return DetectorPipeline(
            ort_backend.infer,
            backend=ort_backend,
            backend_name="onnxruntime",
            input_layout=ort_backend.input_layout,
            post_cfg=post_cfg,
        )

    raise ValueError(f"Unsupported backend: {backend!r}")
