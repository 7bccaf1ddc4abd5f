import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatch
from .nms import NMSConfig, nms
from .types import ACNE_CLASSES, BoundingBox, Detection

LOGGER = logging.getLogger(__name__)

# cx, cy, w, h, objectness
NUM_BOX_FIELDS = 5


@dataclass(frozen=True)
class PostprocessStats:
    """
    Counts from one `process` call, handed to `AcnePostConfig.on_stats`.
    """

    num_anchors: int
    num_candidates: int
    num_detections: int


@dataclass(frozen=True)
class AcnePostConfig:
    """
    Configuration for acne detector post processing.
    """

    # Rows whose objectness is not strictly greater than this are dropped
    # before class weighting.
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.5
    class_names: Sequence[str] = ACNE_CLASSES
    max_detections: Optional[int] = None
    on_stats: Optional[Callable[[PostprocessStats], None]] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError(f"iou_threshold must be in [0, 1], got {self.iou_threshold}")
        if len(self.class_names) == 0:
            raise ValueError("class_names must not be empty")
        if self.max_detections is not None and self.max_detections <= 0:
            raise ValueError("max_detections must be > 0 when set")


class AcnePostprocessor:
    """
    Post-process for YOLOv5-style acne detector exports.

    Supported layout (single image):
    - (1, N, 5 + C): [cx, cy, w, h, obj, class_scores...] with box geometry
      already in pixels of the model input grid.

    N and C are read from the tensor; C must equal len(cfg.class_names).
    """

    def __init__(self, cfg: AcnePostConfig = AcnePostConfig()):
        self.cfg = cfg

    def process(self, tensor: np.ndarray) -> List[Detection]:
        """
        Convert a raw model output into confidence-sorted detections in model
        input coordinates.

        Raises:
            ShapeMismatch: the tensor is not shaped (1, N, 5 + C).
        """

        rows = self._validate(tensor)
        boxes_xywh, scores, class_ids = self._decode(rows)
        num_candidates = int(scores.shape[0])

        if num_candidates:
            nms_cfg = NMSConfig(iou_threshold=self.cfg.iou_threshold, max_detections=self.cfg.max_detections)
            boxes_xyxy = np.concatenate([boxes_xywh[:, :2], boxes_xywh[:, :2] + boxes_xywh[:, 2:]], axis=1)
            keep = nms(boxes_xyxy, scores, nms_cfg)
            boxes_xywh, scores, class_ids = boxes_xywh[keep], scores[keep], class_ids[keep]

        names = self.cfg.class_names
        detections = [
            Detection(
                label=names[int(cls_id)],
                confidence=float(score),
                box=BoundingBox(x=float(x), y=float(y), width=float(w), height=float(h)),
                class_id=int(cls_id),
            )
            for (x, y, w, h), score, cls_id in zip(boxes_xywh, scores, class_ids)
        ]

        stats = PostprocessStats(
            num_anchors=int(rows.shape[0]),
            num_candidates=num_candidates,
            num_detections=len(detections),
        )
        LOGGER.debug(
            "anchors=%d candidates=%d detections=%d",
            stats.num_anchors,
            stats.num_candidates,
            stats.num_detections,
        )
        if self.cfg.on_stats is not None:
            self.cfg.on_stats(stats)

        return detections

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _validate(self, tensor: np.ndarray) -> np.ndarray:
        p = np.asarray(tensor)
        num_cols = NUM_BOX_FIELDS + len(self.cfg.class_names)
        expected = (1, "N", num_cols)

        if p.ndim != 3:
            raise ShapeMismatch(p.shape, expected, "tensor must be 3-dimensional")
        if p.shape[0] != 1:
            raise ShapeMismatch(p.shape, expected, "batch > 1 is not supported, pass one image at a time")
        if p.shape[2] != num_cols:
            raise ShapeMismatch(
                p.shape, expected, f"{len(self.cfg.class_names)} class names need {num_cols} columns"
            )
        return p[0]

    def _decode(self, rows: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Filter rows on objectness, then pick the best class and convert cxcywh -> top-left xywh.
        """

        objectness = rows[:, 4]
        rows = rows[objectness > self.cfg.confidence_threshold]
        if rows.shape[0] == 0:
            return np.empty((0, 4), dtype=np.float64), np.empty((0,), dtype=np.float64), np.empty((0,), dtype=np.int64)

        class_scores = rows[:, NUM_BOX_FIELDS:]
        # argmax returns the first maximum on ties
        class_ids = np.argmax(class_scores, axis=1)
        class_conf = class_scores[np.arange(class_scores.shape[0]), class_ids]
        scores = class_conf.astype(np.float64) * rows[:, 4].astype(np.float64)

        cx, cy, w_box, h_box = rows[:, :4].astype(np.float64).T
        boxes_xywh = np.stack([cx - w_box / 2, cy - h_box / 2, w_box, h_box], axis=1)

        return boxes_xywh, scores, class_ids


def process(
    tensor: np.ndarray,
    class_table: Sequence[str] = ACNE_CLASSES,
    confidence_threshold: float = 0.25,
    iou_threshold: float = 0.5,
) -> List[Detection]:
    """
    Decode a raw (1, N, 5 + C) detector output into labeled detections.

    Rows pass when their objectness is strictly greater than
    `confidence_threshold`; the reported confidence is objectness times the
    best class score. Overlapping boxes are suppressed across all classes
    with greedy NMS, and the result is sorted by descending confidence.
    """

    cfg = AcnePostConfig(
        confidence_threshold=confidence_threshold,
        iou_threshold=iou_threshold,
        class_names=tuple(class_table),
    )
    return AcnePostprocessor(cfg).process(tensor)
