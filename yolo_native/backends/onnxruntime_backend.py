from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np


PathLike = Union[str, Path]
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CPUExecutionProvider"])
    - intra_op_num_threads: 0 lets ORT decide
    """

    providers: Optional[Sequence[str]] = None
    intra_op_num_threads: int = 0


class OnnxRuntimeBackend:
    """
    ONNX Runtime backend for the same YOLO exports.

    Expects an NCHW float32 blob, typically shaped (1, 3, 640, 640).
    """

    input_layout = "nchw"

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime`."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        if cfg.intra_op_num_threads > 0:
            sess_opts.intra_op_num_threads = cfg.intra_op_num_threads
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name
        LOGGER.info("Loaded ONNX model %s (providers %s)", self.model_path.name, self.providers_in_use)

    @property
    def providers_in_use(self) -> Sequence[str]:
        if self.session is None:
            return ()
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise RuntimeError("ONNX Runtime session is closed.")
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return outputs[0]

    def close(self) -> None:
        self.session = None
