import argparse
import logging
from dataclasses import replace
from pathlib import Path

import cv2

from acne_kit import DetectorProfile, draw_detections, load_class_table, load_detector, load_detector_profile


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect acne lesions in an image and draw labeled boxes.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--model", default="Models/acne_yolov5s.onnx", help="Path to the exported .onnx detector.")
    parser.add_argument("--profile", default=None, help="Optional detector profile JSON.")
    parser.add_argument("--metadata", default=None, help="Optional metadata.yaml with the class names mapping.")
    parser.add_argument("--conf", type=float, default=None, help="Objectness threshold (overrides profile).")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (overrides profile).")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CoreMLExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with the annotated image.")
    parser.add_argument("--out", default=None, help="Optional output path to save the annotated image.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def build_profile(args: argparse.Namespace) -> DetectorProfile:
    """
    Start from --profile (or the defaults) and apply --metadata, --conf and --iou on top.
    """

    profile = load_detector_profile(Path(args.profile)) if args.profile else DetectorProfile()
    overrides = {}
    if args.metadata:
        overrides["class_names"] = load_class_table(args.metadata)
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if overrides:
        profile = replace(profile, **overrides)
    return profile


def main() -> int:
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    profile = build_profile(args)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    detector = load_detector(args.model, profile=profile, onnx_providers=onnx_providers)

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    detections = detector.detect_scaled(img)
    if not detections:
        print("No lesions detected.")
    for det in detections:
        x, y, w, h = det.box.x, det.box.y, det.box.width, det.box.height
        print(f"{det.label:<9} {det.confidence:.2f}  x={x:.1f} y={y:.1f} w={w:.1f} h={h:.1f}")

    vis = draw_detections(img, detections)
    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")
        print(f"Wrote {args.out}")
    if args.show:
        cv2.imshow("acne detections", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
