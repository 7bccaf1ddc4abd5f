from dataclasses import dataclass
from typing import Optional

import numpy as np

from .types import BoundingBox


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every box that survives suppression.
    max_detections: Optional[int] = None


def pairwise_iou(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU of one xyxy box (4,) against many xyxy boxes (M, 4).
    A zero union yields 0 rather than NaN.
    """

    xx1 = np.maximum(box[0], boxes[:, 0])
    yy1 = np.maximum(box[1], boxes[:, 1])
    xx2 = np.minimum(box[2], boxes[:, 2])
    yy2 = np.minimum(box[3], boxes[:, 3])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    inter = w * h

    area = (box[2] - box[0]) * (box[3] - box[1])
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = area + areas - inter

    out = np.zeros_like(inter, dtype=np.float64)
    np.divide(inter, union, out=out, where=union > 0)
    return out


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """Intersection-over-Union of two (x, y, width, height) boxes."""

    box_a = np.array(a.as_xyxy(), dtype=np.float64)
    box_b = np.array([b.as_xyxy()], dtype=np.float64)
    return float(pairwise_iou(box_a, box_b)[0])


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy, class-agnostic NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, ordered by descending score.

    Equal scores keep their input order. A box is dropped when its IoU with an
    already kept box is strictly greater than `cfg.iou_threshold`.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    order = np.argsort(-scores, kind="stable")
    keep = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(i)

        rest = order[1:]
        if rest.size == 0:
            break
        overlap = pairwise_iou(boxes[i], boxes[rest])
        order = rest[overlap <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)
