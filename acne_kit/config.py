from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .postprocess import AcnePostConfig
from .types import ACNE_CLASSES, INPUT_SIZE


@dataclass(frozen=True)
class DetectorProfile:
    schema_version: int = 1
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.5
    class_names: Tuple[str, ...] = ACNE_CLASSES
    input_size: int = INPUT_SIZE
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector profile schema_version must be 1")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if not self.class_names:
            raise ValueError("class_names must not be empty")
        if len(set(self.class_names)) != len(self.class_names):
            raise ValueError("class_names must be unique")
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if self.max_detections is not None and self.max_detections <= 0:
            raise ValueError("max_detections must be > 0")

    def post_config(self) -> AcnePostConfig:
        return AcnePostConfig(
            confidence_threshold=self.confidence_threshold,
            iou_threshold=self.iou_threshold,
            class_names=self.class_names,
            max_detections=self.max_detections,
        )


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = payload.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_detector_profile(path: Path) -> DetectorProfile:
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = {
        "schema_version",
        "confidence_threshold",
        "iou_threshold",
        "class_names",
        "input_size",
        "max_detections",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    class_names = payload.get("class_names", list(ACNE_CLASSES))
    if not isinstance(class_names, list) or not all(isinstance(n, str) and n.strip() for n in class_names):
        raise ValueError("class_names must be a list of non-empty strings")

    input_size = _optional_int(payload, "input_size", INPUT_SIZE)
    if input_size is None:
        raise ValueError("input_size must be an integer")

    return DetectorProfile(
        schema_version=_require_int(payload, "schema_version"),
        confidence_threshold=_optional_number(payload, "confidence_threshold", 0.25),
        iou_threshold=_optional_number(payload, "iou_threshold", 0.5),
        class_names=tuple(n.strip() for n in class_names),
        input_size=input_size,
        max_detections=_optional_int(payload, "max_detections", None),
    )
