from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

import numpy as np

from .types import INPUT_SIZE, Detection

# BGR (OpenCV order)
CLASS_COLORS: Dict[str, Tuple[int, int, int]] = {
    "comedone": (255, 0, 0),  # blue
    "papule": (0, 255, 0),  # green
    "pustule": (0, 0, 255),  # red
    "nodule": (128, 0, 128),  # purple
    "cyst": (0, 165, 255),  # orange
}
DEFAULT_COLOR: Tuple[int, int, int] = (0, 255, 255)  # yellow


def color_for_label(label: str) -> Tuple[int, int, int]:
    return CLASS_COLORS.get(label, DEFAULT_COLOR)


def scale_detections(
    detections: Iterable[Detection],
    image_size: Tuple[int, int],
    input_size: Tuple[int, int] = (INPUT_SIZE, INPUT_SIZE),
) -> List[Detection]:
    """
    Map detections from the model input grid to source image pixels.

    The model input is a plain stretch of the image, so x and y scale
    independently: scale_x = image_w / input_w, scale_y = image_h / input_h.

    Args:
        image_size: (width, height) of the source image
        input_size: (width, height) of the model input grid
    """

    image_w, image_h = image_size
    input_w, input_h = input_size
    if input_w <= 0 or input_h <= 0:
        raise ValueError(f"input_size must be positive, got {input_size}")
    sx = image_w / input_w
    sy = image_h / input_h

    return [
        Detection(label=det.label, confidence=det.confidence, box=det.box.scaled(sx, sy), class_id=det.class_id)
        for det in detections
    ]


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_score: bool = True,
    box_thickness: int = 3,
    font_scale: float = 0.8,
    font_thickness: int = 2,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: iterable of Detection already scaled to image pixels.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.box.as_xyxy()
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        color = color_for_label(det.label)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = f"{det.label} ({det.confidence:.2f})" if show_score else det.label

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Caption sits above the box, clamped to the top edge.
        y_text_top = max(y1i - th - baseline - 4, 0)

        x_text_right = min(x1i + tw + 8, w - 1)
        y_text_bottom = min(y_text_top + th + baseline + 4, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (min(x1i + 4, w - 1), min(y_text_top + th + 2, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
