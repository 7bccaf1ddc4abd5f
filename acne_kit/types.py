from dataclasses import dataclass
from typing import Optional, Tuple


# Order matches the score columns emitted by the trained acne model.
ACNE_CLASSES: Tuple[str, ...] = ("comedone", "nodule", "pustule", "papule", "cyst")

# Square model input grid (pixels).
INPUT_SIZE: int = 640


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned rectangle in top-left form: (x, y, width, height).
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    def scaled(self, sx: float, sy: float) -> "BoundingBox":
        return BoundingBox(x=self.x * sx, y=self.y * sy, width=self.width * sx, height=self.height * sy)


@dataclass(frozen=True)
class Detection:
    """
    A classified lesion. `box` is in model input coordinates unless it has been
    passed through `overlay.scale_detections`.
    """

    label: str
    confidence: float
    box: BoundingBox
    class_id: Optional[int] = None
