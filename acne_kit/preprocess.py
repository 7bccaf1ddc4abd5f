from typing import Tuple

import numpy as np

from .types import INPUT_SIZE


def _check_bgr(image: np.ndarray) -> None:
    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array (BGR).")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")


def resize_to_input(image: np.ndarray, new_shape: Tuple[int, int] = (INPUT_SIZE, INPUT_SIZE)) -> np.ndarray:
    """
    Stretch an image to the model input grid without padding.

    Aspect ratio is not preserved; detections are mapped back with independent
    per-axis factors (see `overlay.scale_detections`).

    Args:
        image: BGR image (H, W, 3)
        new_shape: (width, height) of the model input
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for resize_to_input(). Install with `pip install opencv-python`.") from e

    _check_bgr(image)
    new_w, new_h = new_shape
    h, w = image.shape[:2]
    if (w, h) == (new_w, new_h):
        return image
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)


def to_blob(image_bgr: np.ndarray) -> np.ndarray:
    """
    BGR uint8 (H, W, 3) -> float32 RGB in [0, 1], CHW with a batch axis: (1, 3, H, W).
    """

    _check_bgr(image_bgr)
    blob = image_bgr[:, :, ::-1].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])
