"""
Acne lesion detection helpers built around a YOLOv5-style detector.

The core (`postprocess`, `nms`) only needs NumPy: it turns a raw
(1, N, 5 + C) output tensor into labeled, confidence-sorted detections.
OpenCV is used for resizing and drawing; ONNX Runtime is optional.
"""

from .errors import ModelUnavailable, ShapeMismatch
from .types import ACNE_CLASSES, INPUT_SIZE, BoundingBox, Detection
from .nms import NMSConfig, iou, nms
from .postprocess import AcnePostConfig, AcnePostprocessor, PostprocessStats, process
from .preprocess import resize_to_input, to_blob
from .overlay import draw_detections, scale_detections
from .metadata import load_class_table
from .config import DetectorProfile, load_detector_profile
from .runtime import AcneDetector, load_detector, find_project_root, resolve_path

__all__ = [
    "ACNE_CLASSES",
    "INPUT_SIZE",
    "BoundingBox",
    "Detection",
    "ShapeMismatch",
    "ModelUnavailable",
    "NMSConfig",
    "iou",
    "nms",
    "AcnePostConfig",
    "AcnePostprocessor",
    "PostprocessStats",
    "process",
    "resize_to_input",
    "to_blob",
    "draw_detections",
    "scale_detections",
    "load_class_table",
    "DetectorProfile",
    "load_detector_profile",
    "AcneDetector",
    "load_detector",
    "find_project_root",
    "resolve_path",
]
