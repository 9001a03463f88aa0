from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from yolo_native.types import Detection

from .host import DetectorHost

LOGGER = logging.getLogger(__name__)

CHANNEL_NAME = "yolo_detector"

SUCCESS = "success"
ERROR = "error"
NOT_IMPLEMENTED = "not_implemented"


@dataclass(frozen=True)
class MethodCall:
    method: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MethodResult:
    status: str
    value: Any = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    @classmethod
    def success(cls, value: Any) -> "MethodResult":
        return cls(status=SUCCESS, value=value)

    @classmethod
    def error(cls, code: str, message: str) -> "MethodResult":
        return cls(status=ERROR, error_code=code, error_message=message)

    @classmethod
    def not_implemented(cls) -> "MethodResult":
        return cls(status=NOT_IMPLEMENTED)


def _resolved(result: MethodResult) -> "Future[MethodResult]":
    fut: "Future[MethodResult]" = Future()
    fut.set_result(result)
    return fut


def _chain(inner: Future, on_value: Callable[[Any], MethodResult], error_code: str) -> "Future[MethodResult]":
    """Map a worker future onto a MethodResult future; worker exceptions become error results."""
    outer: "Future[MethodResult]" = Future()

    def _done(f: Future) -> None:
        exc = f.exception()
        if exc is not None:
            LOGGER.error("%s: %s", error_code, exc)
            outer.set_result(MethodResult.error(error_code, str(exc)))
            return
        try:
            result = on_value(f.result())
        except (TypeError, ValueError, AttributeError) as conv_exc:
            LOGGER.error("%s: %s", error_code, conv_exc)
            result = MethodResult.error(error_code, str(conv_exc))
        outer.set_result(result)

    inner.add_done_callback(_done)
    return outer


def detections_to_records(detections: List[Detection]) -> List[Dict[str, object]]:
    return [d.to_record() for d in detections]


class DetectorChannel:
    """
    Method-call dispatcher in front of a `DetectorHost`.

    Methods:
    - loadModel -> bool
    - detectObjects {"image": bytes} -> list of detection records
    """

    name = CHANNEL_NAME

    def __init__(self, host: DetectorHost) -> None:
        self.host = host

    def invoke(self, call: MethodCall) -> "Future[MethodResult]":
        if call.method == "loadModel":
            return _chain(self.host.submit_load(), MethodResult.success, "LOAD_FAILED")

        if call.method == "detectObjects":
            image = call.arguments.get("image")
            if image is None:
                return _resolved(MethodResult.error("INVALID_ARGUMENT", "Image bytes are null"))
            return _chain(
                self.host.submit_detect(image),
                lambda dets: MethodResult.success(detections_to_records(dets)),
                "DETECTION_FAILED",
            )

        return _resolved(MethodResult.not_implemented())

    async def invoke_async(self, call: MethodCall) -> MethodResult:
        return await asyncio.wrap_future(self.invoke(call))
