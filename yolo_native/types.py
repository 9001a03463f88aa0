from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Detection:
    """
    One detection in original-image pixel space.

    `x`/`y` are the box center, `width`/`height` its extent.
    """

    class_id: int
    class_name: str
    confidence: float
    x: float
    y: float
    width: float
    height: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.width / 2
        half_h = self.height / 2
        return self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h

    def as_cxcywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def area(self) -> float:
        return self.width * self.height

    def to_record(self) -> Dict[str, object]:
        return {
            "classId": int(self.class_id),
            "className": str(self.class_name),
            "confidence": float(self.confidence),
            "x": float(self.x),
            "y": float(self.y),
            "width": float(self.width),
            "height": float(self.height),
        }
