from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectorProfile
from .errors import ModelUnavailable
from .overlay import scale_detections
from .postprocess import AcnePostConfig, AcnePostprocessor
from .preprocess import resize_to_input, to_blob
from .types import INPUT_SIZE, Detection

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model paths
    such as `Models/acne.onnx`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, the project root otherwise.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]


class AcneDetector:
    """
    Plug-and-play pipeline: preprocess (stretch to grid) -> inference -> postprocess.

    The detector expects BGR images (OpenCV-style) as `np.ndarray`. Calling it
    returns detections in model input coordinates; `detect_scaled` maps them
    back onto the source image.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], Optional[np.ndarray]],
        *,
        backend: Optional[object] = None,
        post_cfg: AcnePostConfig = AcnePostConfig(),
        input_size: int = INPUT_SIZE,
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.input_size = (input_size, input_size)
        self.post = AcnePostprocessor(post_cfg)

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        resized = resize_to_input(image_bgr, self.input_size)
        orig_h, orig_w = image_bgr.shape[:2]
        return PreprocessResult(blob=to_blob(resized), orig_size=(orig_w, orig_h))

    def infer(self, blob: np.ndarray) -> np.ndarray:
        try:
            preds = self._infer_fn(blob)
        except Exception as exc:
            raise ModelUnavailable(f"Inference failed: {exc}") from exc
        if preds is None:
            raise ModelUnavailable("Inference returned no output tensor")
        return preds

    def _detect(self, image_bgr: np.ndarray) -> Tuple[List[Detection], Tuple[int, int]]:
        prep = self.preprocess(image_bgr)
        return self.post.process(self.infer(prep.blob)), prep.orig_size

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        detections, _ = self._detect(image_bgr)
        return detections

    def detect_scaled(self, image_bgr: np.ndarray) -> List[Detection]:
        detections, orig_size = self._detect(image_bgr)
        return scale_detections(detections, orig_size, self.input_size)


def load_detector(
    model_path: PathLike,
    *,
    profile: Optional[DetectorProfile] = None,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> AcneDetector:
    """
    Create a detector backed by ONNX Runtime for an exported model on disk.

    Typical usage:
        detector = load_detector("Models/acne_yolov5s.onnx")  # resolves from project root by default

    Raises:
        ModelUnavailable: the model file is missing or onnxruntime cannot load it.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    profile = profile or DetectorProfile()
    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Only .onnx models are supported, got '{resolved.suffix}'.")

    LOGGER.info("Loading acne detector from %s", resolved)
    try:
        backend = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(
                providers=onnx_providers,
                input_name=onnx_input_name,
                output_name=onnx_output_name,
            ),
        )
    except Exception as exc:
        # onnxruntime raises its own types (InvalidProtobuf, Fail, ...) for unreadable models
        raise ModelUnavailable(f"Could not load model {resolved}: {exc}") from exc

    return AcneDetector(
        backend.infer,
        backend=backend,
        post_cfg=profile.post_config(),
        input_size=profile.input_size,
    )
