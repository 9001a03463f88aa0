from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np


PathLike = Union[str, Path]
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TFLiteBackendConfig:
    """
    Configuration for TFLite (LiteRT) inference.

    - num_threads: interpreter CPU threads
    - output_index: which output tensor to return when the model has several
    """

    num_threads: int = 4
    output_index: int = 0


class TFLiteBackend:
    """
    Minimal LiteRT interpreter wrapper.

    Expects an NHWC float32 blob, typically shaped (1, 640, 640, 3).
    Returns the selected output as a NumPy array, e.g. (1, 84, 8400).
    """

    input_layout = "nhwc"

    def __init__(self, model_path: PathLike, cfg: TFLiteBackendConfig = TFLiteBackendConfig()):
        try:
            from ai_edge_litert.interpreter import Interpreter  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "ai-edge-litert is required for the TFLite backend. Install it with `pip install ai-edge-litert`."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.interpreter: Optional[object] = Interpreter(model_path=str(self.model_path), num_threads=cfg.num_threads)
        self.interpreter.allocate_tensors()

        input_details = self.interpreter.get_input_details()
        output_details = self.interpreter.get_output_details()
        if not input_details:
            raise RuntimeError("TFLite model has no inputs.")
        if cfg.output_index < 0 or cfg.output_index >= len(output_details):
            raise IndexError(f"output_index {cfg.output_index} out of range (num outputs={len(output_details)}).")

        self._input = input_details[0]
        self._output = output_details[cfg.output_index]
        LOGGER.info(
            "Loaded TFLite model %s (input %s, output %s)",
            self.model_path.name,
            self.input_shape,
            self.output_shape,
        )

    @property
    def input_shape(self) -> Tuple[int, ...]:
        return tuple(int(s) for s in self._input["shape"])

    @property
    def output_shape(self) -> Tuple[int, ...]:
        return tuple(int(s) for s in self._output["shape"])

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if self.interpreter is None:
            raise RuntimeError("TFLite interpreter is closed.")
        x = np.asarray(blob, dtype=self._input["dtype"])
        self.interpreter.set_tensor(self._input["index"], x)
        self.interpreter.invoke()
        # get_tensor returns a copy, safe to keep after the next invoke.
        return self.interpreter.get_tensor(self._output["index"])

    def close(self) -> None:
        self.interpreter = None
